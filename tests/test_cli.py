import logging

import pytest

import feedpub.pipeline.__main__ as cli


@pytest.fixture()
def quiet_cli(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli, "configure_logging", lambda verbose: logging.getLogger("pipeline"))
    return monkeypatch


def test_invalid_numeric_variable_exits_with_error(quiet_cli, capsys) -> None:
    quiet_cli.setattr("sys.argv", ["feedpub", "--dry-run"])
    quiet_cli.setenv("IPFS_PORT", "not-a-port")

    with pytest.raises(SystemExit) as excinfo:
        cli.main()

    assert excinfo.value.code == 1
    err = capsys.readouterr().err
    assert "✗ Error: invalid configuration" in err
    assert "not-a-port" in err


def test_missing_variables_exit_with_error(quiet_cli, capsys) -> None:
    quiet_cli.setattr("sys.argv", ["feedpub", "--once"])
    for variable in ("FEED_SOURCE_URI", "FEED_ID", "RECOVERY_PHRASE", "MIX_IPC_PATH"):
        quiet_cli.delenv(variable, raising=False)

    with pytest.raises(SystemExit) as excinfo:
        cli.main()

    assert excinfo.value.code == 1
    assert "✗ Error:" in capsys.readouterr().err
