#!/usr/bin/env python3
"""
Prerequisite checker for seabattle-server.

Run from repo root (after activating your venv):

    python3 scripts/check_prereqs.py
"""

import sys
import traceback
from pathlib import Path


def add_src_to_syspath() -> None:
    """Ensure `src/` is on sys.path so `import seabattle` works without an install."""
    repo_root = Path(__file__).resolve().parents[1]
    src = repo_root / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))


def header(title: str) -> None:
    print("\n" + "=" * 72)
    print(title)
    print("=" * 72)


def check_python_version() -> bool:
    header("1) Python version")
    v = sys.version_info
    print(f"Detected Python: {v.major}.{v.minor}.{v.micro}")
    ok = (v.major, v.minor) >= (3, 10)
    print("OK: Python 3.10 or newer." if ok else "FAIL: Python 3.10+ required.")
    return ok


def check_core_imports() -> bool:
    header("2) Server stack imports")
    libs = ["fastapi", "uvicorn", "pydantic", "opentelemetry.sdk", "opentelemetry.instrumentation.logging"]
    all_ok = True
    for name in libs:
        try:
            __import__(name)
            print(f"OK: imported {name}")
        except Exception as exc:  # noqa: BLE001
            all_ok = False
            print(f"FAIL: could not import {name}: {exc}")
            traceback.print_exc(limit=1)
    return all_ok


def check_engine_smoke_test() -> bool:
    header("3) Engine smoke test (two one-cell fleets, one winning shot)")
    add_src_to_syspath()
    try:
        from seabattle.engine import Coordinate, GameSession, ShipPlacement

        session = GameSession("smoke", ("p1", "p2"))
        fleet = [ShipPlacement(4, 4, vertical=False, length=1)]
        session.submit_fleet(0, fleet)
        session.submit_fleet(1, fleet)
        shooter = session.current_turn
        report = session.attack(shooter, Coordinate(4, 4))
        print(f"    slot {shooter} fired: {[o.status.value for o in report.outcomes]}")
        if report.winner != shooter:
            print("FAIL: sinking the only ship did not finish the game")
            return False
        print("OK: game finished with the expected winner.")
        return True
    except Exception as exc:  # noqa: BLE001
        print(f"FAIL: engine smoke test failed: {exc}")
        traceback.print_exc(limit=1)
        return False


def check_app_builds() -> bool:
    header("4) FastAPI app construction")
    add_src_to_syspath()
    try:
        from seabattle.server import make_app

        app = make_app()
        routes = sorted(getattr(route, "path", "?") for route in app.routes)
        print(f"OK: app built with routes {routes}")
        return True
    except Exception as exc:  # noqa: BLE001
        print(f"FAIL: could not build the app: {exc}")
        traceback.print_exc(limit=1)
        return False


def main() -> None:
    checks = [
        ("Python version", check_python_version),
        ("Core imports", check_core_imports),
        ("Engine smoke test", check_engine_smoke_test),
        ("App construction", check_app_builds),
    ]

    results: list[tuple[str, bool]] = [(name, fn()) for name, fn in checks]

    header("Summary")
    for name, ok in results:
        print(f"{'OK  ' if ok else 'FAIL'} - {name}")

    print("\n" + "=" * 72)
    if all(ok for _, ok in results):
        print("ALL CHECKS PASSED. Start the server with:")
        print("    seabattle --port 3000")
    else:
        print("Some checks FAILED. Review the messages above.")
    print("=" * 72)


if __name__ == "__main__":
    main()
