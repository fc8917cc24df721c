"""Startup Preflight Check"""
import os
import shutil
import sys
from pathlib import Path
from typing import Optional

import httpx
from rich.console import Console

from .config import API_BASE_URL, APP_VERSION, MPV_BINARY, MPV_CACHE_DIR, MPV_PATH

console = Console()

_SUPPORTED_PLATFORMS = ("linux", "darwin")


def find_mpv(
    explicit: str = MPV_PATH,
    cache_dir: Path = MPV_CACHE_DIR,
    binary: str = MPV_BINARY,
) -> Optional[str]:
    """Explicit MPV_PATH, then mpv on PATH, then a previously cached copy."""
    if explicit and Path(explicit).is_file():
        return explicit

    system = shutil.which(binary)
    if system:
        return system

    if cache_dir.is_dir():
        for dirpath, _, filenames in os.walk(cache_dir):
            if binary in filenames:
                return str(Path(dirpath) / binary)
    return None


async def run_preflight() -> tuple[bool, Optional[str]]:
    """
    Run all startup checks. Print results. Return (ok, mpv_path); ok is True
    only if ALL pass.
    """
    console.print(f"\n  [bold]♪  Radio Crestin v{APP_VERSION}[/bold] — preflight check\n")

    mpv_path: Optional[str] = None

    async def _check_mpv():
        nonlocal mpv_path
        mpv_path = find_mpv()
        if mpv_path:
            return True, mpv_path, ""
        return False, "not found", _MPV_FIX

    checks = [
        ("Platform", _check_platform),
        ("mpv player", _check_mpv),
        ("Station directory", _check_api),
    ]

    results = []
    for i, (label, fn) in enumerate(checks, 1):
        ok, msg, fix = await fn()
        results.append((ok, label, msg, fix))
        icon = "[green]✓[/green]" if ok else "[red]✗[/red]"
        dots = "." * max(30 - len(label), 3)
        status = f"[green]{msg}[/green]" if ok else f"[red]{msg}[/red]"
        console.print(f"  [{i}/{len(checks)}] {label} {dots} {icon} {status}")

    failures = [(label, fix) for ok, label, _, fix in results if not ok and fix]
    if failures:
        console.print("")
        for label, fix in failures:
            console.print(f"  [yellow]Fix for {label}:[/yellow]")
            for line in fix.strip().splitlines():
                console.print(f"    {line}")
            console.print("")
        console.print("  Then re-run: [bold]python radio.py[/bold]\n")
        return False, mpv_path

    console.print("")
    return True, mpv_path


_MPV_FIX = (
    "mpv is not installed. Install it with:\n"
    "  macOS:  brew install mpv\n"
    "  Debian/Ubuntu:  sudo apt install mpv\n"
    "Or point MPV_PATH in .env at an mpv binary."
)


async def _check_platform() -> tuple[bool, str, str]:
    if sys.platform in _SUPPORTED_PLATFORMS:
        return True, sys.platform, ""
    return False, f"{sys.platform} unsupported", (
        "The player talks to mpv over a Unix socket; run on Linux or macOS."
    )


async def _check_api() -> tuple[bool, str, str]:
    try:
        async with httpx.AsyncClient(timeout=5) as client:
            r = await client.get(f"{API_BASE_URL}/stations")
            if r.status_code == 200:
                return True, f"reachable at {API_BASE_URL.split('//')[-1]}", ""
            return False, f"HTTP {r.status_code}", "The station directory is down — try again later."
    except httpx.HTTPError:
        pass
    return False, "not responding", "Check your internet connection."
