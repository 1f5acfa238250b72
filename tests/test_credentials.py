from types import SimpleNamespace

import keyring
import pytest

import tapsync.constants as constants
import tapsync.credentials as credentials
from tapsync.errors import CLIError, CredentialNotFound
from tapsync.models import DownloadPolicy

from conftest import completed


def test_flag_wins_over_environment(make_context):
    context = make_context(environ={"HOMEBREW_GITHUB_API_TOKEN": "env-token"})
    credential = credentials.find_credential(" flag-token ", context=context)
    assert credential.token == "flag-token"
    assert credential.source == "flag"


@pytest.mark.parametrize(
    "environ, expected",
    [
        (
            {"HOMEBREW_GITHUB_API_TOKEN": "a", "GITHUB_TOKEN": "b", "GH_TOKEN": "c"},
            ("a", "HOMEBREW_GITHUB_API_TOKEN"),
        ),
        ({"GITHUB_TOKEN": "b", "GH_TOKEN": "c"}, ("b", "GITHUB_TOKEN")),
        ({"HOMEBREW_GITHUB_API_TOKEN": "  ", "GH_TOKEN": "c"}, ("c", "GH_TOKEN")),
    ],
)
def test_environment_variables_checked_in_order(make_context, environ, expected):
    context = make_context(environ=environ)
    credential = credentials.find_credential(context=context)
    assert (credential.token, credential.source) == expected


def test_gh_helper_used_after_environment(make_context, fake_runner):
    runner = fake_runner([completed(0, stdout="gho_fromhelper\n")])
    context = make_context(runner=runner, binaries=["gh"])
    keyring.set_password(constants.KEYRING_SERVICE, constants.KEYRING_USERNAME, "stored")

    credential = credentials.find_credential(context=context)

    assert credential.token == "gho_fromhelper"
    assert credential.source == "gh"
    assert runner.calls[0]["argv"] == ["/usr/bin/gh", "auth", "token"]


def test_gh_helper_not_run_when_environment_has_token(make_context, fake_runner):
    runner = fake_runner()
    context = make_context(environ={"GH_TOKEN": "env"}, runner=runner, binaries=["gh"])
    assert credentials.find_credential(context=context).source == "GH_TOKEN"
    assert runner.calls == []


def test_failed_gh_helper_falls_through_to_keyring(make_context, fake_runner):
    runner = fake_runner([completed(1, stderr="not logged in")])
    context = make_context(runner=runner, binaries=["gh"])
    keyring.set_password(constants.KEYRING_SERVICE, constants.KEYRING_USERNAME, "stored")

    credential = credentials.find_credential(context=context)

    assert credential.token == "stored"
    assert credential.source == "keyring"


def test_helpers_skipped_without_fallback_policy(make_context, fake_runner):
    runner = fake_runner([completed(0, stdout="gho_x")])
    context = make_context(runner=runner, binaries=["gh"])
    keyring.set_password(constants.KEYRING_SERVICE, constants.KEYRING_USERNAME, "stored")

    result = credentials.find_credential(context=context, policy=DownloadPolicy.REQUIRE_TOKEN)

    assert result is None
    assert runner.calls == []


def test_resolve_credential_raises_with_remediation(make_context):
    with pytest.raises(CredentialNotFound) as excinfo:
        credentials.resolve_credential(context=make_context())
    message = str(excinfo.value)
    assert "gh auth login" in message
    assert "HOMEBREW_GITHUB_API_TOKEN" in message
    assert "tapsync auth login" in message


def test_credential_repr_masks_token():
    credential = credentials.Credential(token="ghp_abcdefghijklmnop", source="flag")
    assert "abcdefghijkl" not in repr(credential)
    assert "ghp_...mnop" in repr(credential)


def test_auth_login_stores_token_and_logout_clears_it(capsys):
    assert credentials.handle_auth_login(SimpleNamespace(token="ghp_secret_value")) == 0
    assert keyring.get_password(constants.KEYRING_SERVICE, constants.KEYRING_USERNAME) == "ghp_secret_value"
    assert "ghp_secret_value" not in capsys.readouterr().out

    assert credentials.handle_auth_logout(SimpleNamespace()) == 0
    assert keyring.get_password(constants.KEYRING_SERVICE, constants.KEYRING_USERNAME) is None


def test_auth_login_prompts_when_token_missing(monkeypatch):
    monkeypatch.setattr(credentials, "prompt_password", lambda prompt: "ghp_prompted")
    credentials.handle_auth_login(SimpleNamespace(token=None))
    assert keyring.get_password(constants.KEYRING_SERVICE, constants.KEYRING_USERNAME) == "ghp_prompted"


def test_auth_login_rejects_empty_token(monkeypatch):
    monkeypatch.setattr(credentials, "prompt_password", lambda prompt: "")
    with pytest.raises(CLIError):
        credentials.handle_auth_login(SimpleNamespace(token=None))


def test_auth_status_reports_source(make_context, capsys):
    context = make_context(environ={"GITHUB_TOKEN": "ghp_statusstatus1234"})
    credentials.handle_auth_status(SimpleNamespace(context=context))
    out = capsys.readouterr().out
    assert "GITHUB_TOKEN" in out
    assert "ghp_statusstatus1234" not in out
