#!/usr/bin/env python3
"""
Development tasks for pydig.

Each task runs through uv so the project environment is used:

    python scripts.py test
    python scripts.py check
"""

import subprocess
import sys
from collections.abc import Callable
from pathlib import Path

PACKAGE_DIR = "src/pydig/"


def run_command(cmd: list[str], description: str) -> bool:
    """Run a command and report whether it succeeded."""
    print(f"\n🔄 {description}: {' '.join(cmd)}")

    try:
        subprocess.run(cmd, check=True)
    except subprocess.CalledProcessError as e:
        print(f"❌ {description} (exit code {e.returncode})")
        return False
    except FileNotFoundError:
        print(f"❌ {cmd[0]} is not installed")
        return False

    print(f"✅ {description}")
    return True


def run_all(commands: list[tuple[list[str], str]]) -> bool:
    """Run every command, even after a failure."""
    results = [run_command(cmd, description) for cmd, description in commands]
    return all(results)


def run_tests() -> int:
    print("🧪 Tests")
    return 0 if run_command(["uv", "run", "pytest", "-v"], "Tests") else 1


def run_lint() -> int:
    print("🔍 Lint")
    passed = run_all(
        [
            (["uv", "run", "ruff", "check", "."], "Ruff linting"),
            (["uv", "run", "ruff", "format", "--check", "."], "Ruff formatting"),
        ]
    )
    if not passed:
        print("\n💡 Try: uv run ruff format . && uv run ruff check --fix .")
    return 0 if passed else 1


def run_typecheck() -> int:
    print("🔬 Type checks")
    passed = run_all(
        [
            (["uv", "run", "mypy", PACKAGE_DIR], "MyPy type checking"),
            (["uv", "run", "pyright", PACKAGE_DIR], "Pyright type checking"),
        ]
    )
    return 0 if passed else 1


def run_demos() -> int:
    """Run every demo script; files starting with an underscore are helpers."""
    print("🎭 Demos")

    demo_dir = Path("demo")
    if not demo_dir.exists():
        print("❌ No demo/ directory")
        return 1

    demos = sorted(p for p in demo_dir.glob("*.py") if not p.name.startswith("_"))
    if not demos:
        print("⚠️  demo/ contains no scripts")
        return 0

    passed = run_all([(["uv", "run", "python", str(p)], f"Demo: {p.name}") for p in demos])
    return 0 if passed else 1


TASKS: dict[str, tuple[str, Callable[[], int]]] = {
    "test": ("Tests", run_tests),
    "lint": ("Linting", run_lint),
    "typecheck": ("Type Checking", run_typecheck),
    "demos": ("Demos", run_demos),
}


def check_all() -> int:
    """Run every task and print a summary."""
    print("🚀 Running all checks for pydig")
    print("=" * 50)

    results = {}
    for title, task in TASKS.values():
        print(f"\n{'=' * 20} {title} {'=' * 20}")
        results[title] = task() == 0

    print(f"\n{'=' * 20} SUMMARY {'=' * 20}")
    for title, passed in results.items():
        print(f"{title:<15} {'✅ PASS' if passed else '❌ FAIL'}")

    if all(results.values()):
        print("\n🎉 Everything passed")
        return 0
    print("\n💥 Some checks failed")
    return 1


def main(argv: list[str]) -> int:
    commands = [*TASKS, "check"]
    if len(argv) < 2:
        print(f"Available commands: {', '.join(commands)}")
        print("Usage: python scripts.py <command>")
        return 0

    command = argv[1]
    if command == "check":
        return check_all()
    if command not in TASKS:
        print(f"Unknown command: {command}")
        print(f"Available commands: {', '.join(commands)}")
        return 1
    return TASKS[command][1]()


if __name__ == "__main__":
    sys.exit(main(sys.argv))
