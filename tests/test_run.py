import httpx
import pytest

from dogreport import run
from dogreport.config import DogReportConfig
from dogreport.run import authenticate, main, run_once
from dogreport.session import Credentials, PersistenceError, SessionStore
from wagapi.errors import AuthError, FetchError
from wagapi.models import Walk, Walker


@pytest.fixture()
def store(tmp_path):
    return SessionStore(str(tmp_path / "settings.sqlite"))


def _walks():
    return {
        100: Walk(date="hundred", walker_id=7),
        20: Walk(date="twenty", walker_id=8),
        99: Walk(date="ninety-nine", walker_id=7),
    }


def test_first_run_reports_everything_then_nothing(store, fake_source):
    source = fake_source(_walks(), walkers={7: Walker(id=7, first_name="Ana")})
    written = []

    html = run_once(source, store, written.append)
    assert written == [html]
    assert html.index("<b>hundred</b>") < html.index("<b>ninety-nine</b>") < html.index("<b>twenty</b>")
    assert sorted(source.walker_calls) == [7, 8]
    assert store.load() == frozenset({100, 20, 99})

    assert run_once(source, store, written.append) is None
    assert len(written) == 1


def test_only_new_walks_are_reported(store, fake_source):
    store.save({100, 20})
    source = fake_source(_walks())
    written = []

    html = run_once(source, store, written.append)
    assert "<b>ninety-nine</b>" in html
    assert "<b>hundred</b>" not in html
    assert source.walker_calls == [7]


def test_walker_fetch_failure_persists_nothing(store, fake_source):
    source = fake_source(_walks(), failing_walkers={8})
    written = []

    with pytest.raises(FetchError):
        run_once(source, store, written.append)
    assert written == []
    assert store.load() == frozenset()


def test_write_failure_persists_nothing(store, fake_source):
    def broken_write(html):
        raise OSError("disk full")

    with pytest.raises(OSError):
        run_once(fake_source(_walks()), store, broken_write)
    assert store.load() == frozenset()


def test_dry_run_does_not_mark_walks(store, fake_source):
    source = fake_source(_walks())
    first = run_once(source, store, lambda html: None, persist=False)
    second = run_once(source, store, lambda html: None, persist=False)
    assert first == second
    assert store.load() == frozenset()


def _cfg(tmp_path):
    return DogReportConfig(
        settings_path=str(tmp_path / "settings.sqlite"),
        firebase_url="https://fb.test/",
        login_url="https://login.test/login",
        user_agent="test",
        timeout_s=5.0,
    )


def test_authenticate_prefers_stored_token(tmp_path, store, make_token):
    def handler(request):
        raise AssertionError("no login expected")

    with httpx.Client(transport=httpx.MockTransport(handler)) as http:
        client = authenticate(http, store, Credentials(token=make_token(5)), _cfg(tmp_path))
    assert client.owner_id == 5


def test_authenticate_logs_in_when_token_is_bad(tmp_path, store, make_token):
    fresh = make_token(6)

    def handler(request):
        return httpx.Response(200, json={"status": "success", "data": {"token": fresh}})

    creds = Credentials(username="me@example.com", password="pw", token="garbage")
    with httpx.Client(transport=httpx.MockTransport(handler)) as http:
        client = authenticate(http, store, creds, _cfg(tmp_path))

    assert client.owner_id == 6
    assert store.load_credentials().token == fresh


def test_authenticate_without_any_credentials(tmp_path, store):
    with httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(500))) as http:
        with pytest.raises(AuthError):
            authenticate(http, store, Credentials(), _cfg(tmp_path))


@pytest.fixture()
def backend(monkeypatch, tmp_path, make_token, walk_payload):
    """Point main() at a fake backend and a temporary settings file."""
    token = make_token(42)
    calls = {"login": 0}
    routes = {
        "/walks-past-by-owner/42.json": {"100": walk_payload(date="hundred"), "20": walk_payload(date="twenty")},
        "/walkers-profiles/7.json": {"id": 7, "first_name": "Ana", "rating": 5},
    }
    calls["routes"] = routes

    def handler(request):
        if request.url.host == "login.test":
            calls["login"] += 1
            return httpx.Response(200, json={"status": "success", "data": {"success": True, "token": token}})
        body = routes.get(request.url.path)
        if isinstance(body, httpx.Response):
            return body
        if body is not None:
            return httpx.Response(200, json=body)
        return httpx.Response(404, json=None)

    real_client = httpx.Client
    monkeypatch.setattr(run.httpx, "Client", lambda **kw: real_client(transport=httpx.MockTransport(handler), **kw))
    monkeypatch.setenv("DOGREPORT_SETTINGS_PATH", str(tmp_path / "settings.sqlite"))
    monkeypatch.setenv("DOGREPORT_FIREBASE_URL", "https://fb.test/")
    monkeypatch.setenv("DOGREPORT_LOGIN_URL", "https://login.test/login")
    return calls


def test_main_end_to_end(backend, capsys):
    assert main(["--username", "me@example.com", "--password", "pw"]) == 0
    out = capsys.readouterr().out
    assert out.startswith("<html><body>")
    assert out.index("<b>hundred</b>") < out.index("<b>twenty</b>")
    assert backend["login"] == 1

    # token reused, nothing new
    assert main([]) == 0
    assert capsys.readouterr().out == ""
    assert backend["login"] == 1


def test_main_writes_output_file_only_when_there_is_news(backend, tmp_path):
    target = tmp_path / "out" / "report.html"
    assert main(["--username", "me@example.com", "--password", "pw", "--output", str(target)]) == 0
    assert "<b>hundred</b>" in target.read_text(encoding="utf-8")

    target.unlink()
    assert main(["--output", str(target)]) == 0
    assert not target.exists()


def test_main_save_failure_keeps_written_report(backend, capsys, monkeypatch):
    def broken_save(self, reported):
        raise PersistenceError("disk I/O error")

    monkeypatch.setattr(SessionStore, "save", broken_save)
    assert main(["--username", "me@example.com", "--password", "pw"]) == 1
    captured = capsys.readouterr()
    assert captured.out.startswith("<html><body>")
    assert "<b>hundred</b>" in captured.out
    assert "PersistenceError" in captured.err


def test_main_fetch_failure_writes_nothing(backend, capsys, tmp_path):
    backend["routes"]["/walkers-profiles/7.json"] = httpx.Response(500, text="boom")
    assert main(["--username", "me@example.com", "--password", "pw"]) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "FetchError" in captured.err
    assert SessionStore(str(tmp_path / "settings.sqlite")).load() == frozenset()


def test_main_without_credentials_fails(backend, capsys):
    assert main([]) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "AuthError" in captured.err


def test_main_rejects_bad_timeout(monkeypatch, capsys):
    monkeypatch.setenv("DOGREPORT_TIMEOUT_S", "soon")
    assert main([]) == 1
    assert "DOGREPORT_TIMEOUT_S" in capsys.readouterr().err
