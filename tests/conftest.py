"""Pytest configuration and shared fixtures."""

import json
import stat
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

from seacan.common.config.settings import Settings


PACKAGE_ID = "path+file:///work/demo#0.1.0"
LEGACY_PACKAGE_ID = "demo 0.1.0 (path+file:///work/demo)"

_FAKE_CARGO = """
import json
import os
import signal
import sys
import time
from pathlib import Path

here = Path(__file__)
spec = json.loads(here.with_name(here.name + ".json").read_text())
calls = here.with_name(here.name + ".calls")
with calls.open("a") as f:
    f.write(json.dumps({
        "argv": sys.argv[1:],
        "pid": os.getpid(),
        "cwd": os.getcwd(),
        "env": {key: os.environ.get(key) for key in spec["echo_env"]},
    }) + "\\n")

for line in spec["stdout"]:
    sys.stdout.write(line + "\\n")
sys.stdout.flush()
sys.stderr.write(spec["stderr"])
sys.stderr.flush()
time.sleep(spec["sleep"])
if spec["signal"]:
    os.kill(os.getpid(), signal.SIGKILL)
sys.exit(spec["exit_code"])
"""

_FAKE_HARNESS = """
import json
import os
import sys
import time
from pathlib import Path

here = Path(__file__)
spec = json.loads(here.with_name(here.name + ".json").read_text())
here.with_name(here.name + ".pid").write_text(str(os.getpid()))
time.sleep(spec["sleep"])
if spec["raw_stdout"] is not None:
    sys.stdout.buffer.write(bytes.fromhex(spec["raw_stdout"]))
else:
    lines = spec["ignored"] if "--ignored" in sys.argv else spec["listing"]
    for line in lines:
        sys.stdout.write(line + "\\n")
sys.stdout.flush()
sys.exit(spec["exit_code"])
"""


def _write_script(path: Path, body: str, spec: Dict[str, Any]) -> Path:
    path.write_text(f"#!{sys.executable}\n{body}")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    path.with_name(path.name + ".json").write_text(json.dumps(spec))
    return path


class CargoMessages:
    """Builds lines of Cargo's JSON message protocol."""

    def target(self, name: str, kind: str = "bin") -> Dict[str, Any]:
        return {
            "kind": [kind],
            "crate_types": ["lib" if kind == "lib" else "bin"],
            "name": name,
            "src_path": f"/work/demo/src/{name}.rs",
            "edition": "2021",
            "doc": kind in ("lib", "bin"),
            "doctest": kind == "lib",
            "test": True,
        }

    def artifact(
        self,
        name: str,
        kind: str = "bin",
        executable: Optional[Path] = None,
        test: bool = False,
        package_id: str = PACKAGE_ID,
        fresh: bool = False,
    ) -> str:
        filenames = [str(executable)] if executable else [f"/work/target/debug/lib{name}.rlib"]
        return json.dumps({
            "reason": "compiler-artifact",
            "package_id": package_id,
            "manifest_path": "/work/demo/Cargo.toml",
            "target": self.target(name, kind),
            "profile": {
                "opt_level": "0",
                "debuginfo": 2,
                "debug_assertions": True,
                "overflow_checks": True,
                "test": test,
            },
            "features": ["default"],
            "filenames": filenames,
            "executable": str(executable) if executable else None,
            "fresh": fresh,
        })

    def diagnostic(
        self,
        level: str,
        message: str,
        code: Optional[str] = None,
        file_name: Optional[str] = "src/main.rs",
        line: int = 1,
        column: int = 1,
        label: Optional[str] = None,
        children: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        spans = []
        if file_name:
            spans.append({
                "file_name": file_name,
                "byte_start": 0,
                "byte_end": 1,
                "line_start": line,
                "line_end": line,
                "column_start": column,
                "column_end": column + 1,
                "is_primary": True,
                "text": [],
                "label": label,
                "suggested_replacement": None,
                "suggestion_applicability": None,
                "expansion": None,
            })
        return {
            "$message_type": "diagnostic",
            "message": message,
            "code": {"code": code, "explanation": None} if code else None,
            "level": level,
            "spans": spans,
            "children": children or [],
            "rendered": f"\x1b[1m{level}\x1b[0m: {message}\n",
        }

    def child(
        self,
        level: str,
        message: str,
        suggested_replacement: Optional[str] = None,
    ) -> Dict[str, Any]:
        spans = []
        if suggested_replacement is not None:
            spans.append({
                "file_name": "src/main.rs",
                "line_start": 1,
                "line_end": 1,
                "column_start": 1,
                "column_end": 2,
                "is_primary": True,
                "label": None,
                "suggested_replacement": suggested_replacement,
            })
        return {"message": message, "code": None, "level": level, "spans": spans, "children": [], "rendered": None}

    def compiler_message(self, diagnostic: Dict[str, Any], target: str = "demo", kind: str = "bin") -> str:
        return json.dumps({
            "reason": "compiler-message",
            "package_id": PACKAGE_ID,
            "manifest_path": "/work/demo/Cargo.toml",
            "target": self.target(target, kind),
            "message": diagnostic,
        })

    def build_script(self, out_dir: str = "/work/target/debug/build/demo-1/out") -> str:
        return json.dumps({
            "reason": "build-script-executed",
            "package_id": PACKAGE_ID,
            "linked_libs": ["z"],
            "linked_paths": ["native=/usr/lib"],
            "cfgs": ["has_feature"],
            "env": [["DEMO_VERSION", "1"]],
            "out_dir": out_dir,
        })

    def finished(self, success: bool = True) -> str:
        return json.dumps({"reason": "build-finished", "success": success})


@pytest.fixture
def messages() -> CargoMessages:
    """Factory for Cargo protocol lines."""
    return CargoMessages()


@pytest.fixture
def settings() -> Settings:
    """Settings with short timeouts suitable for subprocess tests."""
    return Settings(
        build_timeout_seconds=20,
        listing_timeout_seconds=10,
        max_parallel_listings=2,
        detect_ignored_tests=True,
        log_json=False,
    )


@pytest.fixture
def fake_cargo(tmp_path: Path) -> Callable[..., Path]:
    """Create an executable that replays canned cargo output.

    Every invocation is appended to ``<script>.calls`` as JSON.
    """

    def factory(
        stdout: Optional[List[str]] = None,
        stderr: str = "",
        exit_code: int = 0,
        sleep: float = 0.0,
        kill: bool = False,
        echo_env: Optional[List[str]] = None,
        name: str = "cargo",
    ) -> Path:
        spec = {
            "stdout": stdout or [],
            "stderr": stderr,
            "exit_code": exit_code,
            "sleep": sleep,
            "signal": kill,
            "echo_env": echo_env or [],
        }
        return _write_script(tmp_path / name, _FAKE_CARGO, spec)

    return factory


@pytest.fixture
def fake_harness(tmp_path: Path) -> Callable[..., Path]:
    """Create an executable that answers libtest's listing flags."""

    def factory(
        name: str,
        listing: Optional[List[str]] = None,
        ignored: Optional[List[str]] = None,
        exit_code: int = 0,
        sleep: float = 0.0,
        raw_stdout: Optional[bytes] = None,
    ) -> Path:
        spec = {
            "listing": listing or [],
            "ignored": ignored or [],
            "exit_code": exit_code,
            "sleep": sleep,
            "raw_stdout": raw_stdout.hex() if raw_stdout is not None else None,
        }
        return _write_script(tmp_path / name, _FAKE_HARNESS, spec)

    return factory


def read_calls(script: Path) -> List[Dict[str, Any]]:
    calls = script.with_name(script.name + ".calls")
    if not calls.exists():
        return []
    return [json.loads(line) for line in calls.read_text().splitlines() if line]


@pytest.fixture
def cargo_calls() -> Callable[[Path], List[Dict[str, Any]]]:
    """Read back the invocations recorded by a fake cargo."""
    return read_calls
