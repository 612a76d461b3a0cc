import pytest

from cashbook.auth import authenticate
from cashbook.errors import AuthenticationFailed
from cashbook.settings import get_settings, parse_users


def test_parse_users():
    users = parse_users("a:pw:director:Alpha; b:pw2:treasurer ;")
    assert [(u.username, u.role, u.name) for u in users] == [
        ("a", "director", "Alpha"),
        ("b", "treasurer", "b"),
    ]


@pytest.mark.parametrize("raw", ["a:pw", "a:pw:admin", ":pw:director", "a::treasurer"])
def test_parse_users_bad(raw):
    with pytest.raises(ValueError):
        parse_users(raw)


def test_get_settings_reads_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("CASHBOOK_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("CASHBOOK_RECENT_LIMIT", "5")
    monkeypatch.setenv("CASHBOOK_USERS", "boss:x:director")
    settings = get_settings()
    assert settings.db_path == tmp_path / "cashbook.sqlite"
    assert settings.recent_limit == 5
    assert settings.public_limit == 50
    assert [u.username for u in settings.users] == ["boss"]


def test_get_settings_rejects_non_positive_limit(monkeypatch):
    monkeypatch.setenv("CASHBOOK_PUBLIC_LIMIT", "0")
    with pytest.raises(ValueError):
        get_settings()


def test_authenticate(settings):
    principal = authenticate(settings, "bendahara", "ben-pw")
    assert principal.role == "treasurer"
    assert principal.name == "Bendahara"
    with pytest.raises(AuthenticationFailed):
        authenticate(settings, "bendahara", "dir-pw")
    with pytest.raises(AuthenticationFailed):
        authenticate(settings, "nobody", "x")
