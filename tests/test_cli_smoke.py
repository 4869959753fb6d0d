import subprocess
import sys


def test_cli_help() -> None:
    cp = subprocess.run(
        [sys.executable, "-m", "bchaplo", "--help"],
        check=True,
        capture_output=True,
        text=True,
    )
    assert "bchaplo" in cp.stdout.lower()
