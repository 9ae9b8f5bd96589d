from typer.testing import CliRunner

from mcwatch.cli import app

from .conftest import SHARED_KEY

runner = CliRunner()


def test_sign_command_prints_header():
    result = runner.invoke(app, [
        "sign",
        "--customer-id", "customer-id",
        "--shared-key", SHARED_KEY,
        "--length", "42",
        "--date", "Mon, 02 Jan 2006 15:04:05 GMT",
    ])
    assert result.exit_code == 0
    assert "SharedKey customer-id:UoQePv5YNwDZ8tbXtIN7+VhOr9P+i6pX+Jxuu2XoXKs=" in result.output


def test_status_fails_without_credentials(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("RCON_AZURE_CUSTOMER_ID", raising=False)
    monkeypatch.delenv("RCON_AZURE_SHARED_KEY", raising=False)
    result = runner.invoke(app, ["status"])
    assert result.exit_code == 1
