import json
from unittest.mock import patch

import pytest
import requests

from htmlinspect.cli import main, validate_url
from htmlinspect.reachability import InvalidLink

PAGE = b"""<!DOCTYPE html>
<html>
<head><title>Some title</title></head>
<body>
    <h1>test</h1>
    <a href="/some/relative/path/">link</a>
    <form><input type="password" name="password"></form>
    <a href="https://www.facebook.com">link</a>
</body>
</html>
"""


@pytest.mark.parametrize(
    "url, ok",
    [
        ("https://example.com", True),
        ("http://127.0.0.1:8080/page", True),
        ("", False),
        ("example.com", False),
        ("http://[::1", False),
    ],
)
def test_validate_url(url, ok):
    assert (validate_url(url) is None) == ok


@patch("htmlinspect.cli.check_links")
@patch("htmlinspect.cli.fetch_page")
def test_main_prints_report(mock_fetch, mock_check, capsys):
    mock_fetch.return_value = PAGE
    mock_check.return_value = {
        "site.test": [InvalidLink(url="http://site.test/some/relative/path/", reason="server responded with status 500")],
    }

    exit_code = main(["http://site.test/", "--user-agent", "test/1.0", "--probe-timeout", "3"])

    assert exit_code == 0
    mock_fetch.assert_called_once_with("http://site.test/", 15.0, "test/1.0")
    links, base_url = mock_check.call_args.args
    assert links == {"": {"/some/relative/path/"}, "www.facebook.com": {"https://www.facebook.com"}}
    assert base_url == "http://site.test/"
    assert mock_check.call_args.kwargs == {"timeout": 3.0, "user_agent": "test/1.0"}

    payload = json.loads(capsys.readouterr().out)
    assert payload["version"] == "5"
    assert payload["title"] == "Some title"
    assert payload["login_form"] is True
    assert payload["headings"] == [{"level": "h1", "total": 1}]
    assert payload["internal"] == {"domain": "site.test", "links": ["http://site.test/some/relative/path/"], "total": 1}
    assert payload["external"] == [{"domain": "www.facebook.com", "links": ["https://www.facebook.com"], "total": 1}]
    assert payload["inaccessible"][0]["total"] == 1


@patch("htmlinspect.cli.check_links", return_value={})
@patch("htmlinspect.cli.fetch_page", return_value=PAGE)
def test_main_writes_output_file(mock_fetch, mock_check, tmp_path):
    out = tmp_path / "reports" / "page.json"

    assert main(["http://site.test/", "--out", str(out), "--pretty"]) == 0

    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload["inaccessible"] == []


def test_main_rejects_empty_url(capsys):
    assert main([""]) == 2
    assert json.loads(capsys.readouterr().out) == {"err": "empty URL in payload"}


@patch("htmlinspect.cli.fetch_page")
def test_main_reports_fetch_error(mock_fetch, capsys):
    mock_fetch.side_effect = requests.ConnectionError("no such host")

    assert main(["http://www.foobar"]) == 1
    assert json.loads(capsys.readouterr().out) == {"err": "no such host"}


@patch("htmlinspect.cli.check_links")
@patch("htmlinspect.cli.fetch_page", return_value=b'<html><body><a href="%%2">x</a></body></html>')
def test_main_reports_extraction_error(mock_fetch, mock_check, capsys):
    assert main(["http://site.test/"]) == 1

    payload = json.loads(capsys.readouterr().out)
    assert "invalid URL escape" in payload["err"]
    mock_check.assert_not_called()
