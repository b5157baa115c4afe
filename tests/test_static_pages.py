from tests.spotify_helpers import build_test_client


def _static_dir(tmp_path):
    (tmp_path / "index.html").write_text("<h1>login</h1>", encoding="utf-8")
    (tmp_path / "dashboard.html").write_text("<h1>dashboard</h1>", encoding="utf-8")
    return tmp_path


def test_root_serves_index_without_cookies(fake_spotify, tmp_path) -> None:
    client = build_test_client(fake_spotify, static_dir=_static_dir(tmp_path))

    response = client.get("/")

    assert response.status_code == 200
    assert "login" in response.text


def test_root_redirects_to_dashboard_with_cookies(fake_spotify, tmp_path) -> None:
    client = build_test_client(fake_spotify, static_dir=_static_dir(tmp_path))
    client.cookies.set("access_token", "valid-access")
    client.cookies.set("refresh_token", "valid-refresh")

    response = client.get("/", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == "/dashboard"


def test_dashboard_page(fake_spotify, tmp_path) -> None:
    client = build_test_client(fake_spotify, static_dir=_static_dir(tmp_path))

    assert "dashboard" in client.get("/dashboard").text


def test_pages_disabled_without_static_dir(fake_spotify, tmp_path) -> None:
    client = build_test_client(fake_spotify, static_dir=tmp_path / "missing")

    assert client.get("/").status_code == 404
