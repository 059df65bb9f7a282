from __future__ import annotations

import runpy
from pathlib import Path

import scalersync_app.__main__ as cli_main


def test_main_passes_through_args(monkeypatch) -> None:
    calls: list[list[str]] = []
    monkeypatch.setattr(cli_main, "_cli_main", lambda argv=None: calls.append(list(argv or [])) or 0)

    rc = cli_main.main(["list-ports"])
    assert rc == 0
    assert calls == [["list-ports"]]


def test_main_reads_sys_argv(monkeypatch) -> None:
    calls: list[list[str]] = []
    monkeypatch.setattr(cli_main, "_cli_main", lambda argv=None: calls.append(list(argv or [])) or 0)
    monkeypatch.setattr(cli_main.sys, "argv", ["scalersync", "show-config"])

    assert cli_main.main() == 0
    assert calls == [["show-config"]]


def test_main_module_runpath_without_package_context() -> None:
    main_path = Path(__file__).resolve().parents[1] / "apps" / "cli" / "scalersync_app" / "__main__.py"
    result = runpy.run_path(str(main_path))
    assert "main" in result
