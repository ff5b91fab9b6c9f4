import importlib.util
from pathlib import Path


def _load_guard():
    script = (
        Path(__file__).resolve().parent.parent / "scripts" / "check_core_imports.py"
    )
    spec = importlib.util.spec_from_file_location("check_core_imports", script)
    module = importlib.util.module_from_spec(spec)
    assert spec.loader is not None  # for mypy
    spec.loader.exec_module(module)
    return module


def test_core_import_guard_passes():
    exit_code = _load_guard().main()
    assert exit_code == 0, "core import guard failed"


def test_guard_flags_server_imports(tmp_path: Path):
    guard = _load_guard()
    bad = tmp_path / "bad.py"
    bad.write_text(
        "import json\n"
        "from mcp.server.fastmcp import FastMCP\n"
        "import bitbucket_mcp.server\n"
    )

    errors = guard.scan_file(bad)

    assert len(errors) == 2
    assert "mcp.server.fastmcp" in errors[0]
    assert "bitbucket_mcp.server" in errors[1]


def test_guard_allows_mcp_types():
    guard = _load_guard()
    assert not guard.is_forbidden("mcp.types")
    assert guard.is_forbidden("starlette.responses")
