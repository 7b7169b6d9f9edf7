from __future__ import annotations

import pytest

from bazaar.__main__ import build_parser, main


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])

    args = build_parser().parse_args(["serve", "--port", "9000"])
    assert (args.command, args.host, args.port) == ("serve", "127.0.0.1", 9000)


def test_init_db_then_sweep(tmp_path):
    path = tmp_path / "cli.db"
    url = f"sqlite+aiosqlite:///{path}"

    assert main(["--database-url", url, "init-db"]) == 0
    assert path.exists()
    assert main(["--database-url", url, "sweep"]) == 0
