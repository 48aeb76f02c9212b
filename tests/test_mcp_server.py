import json

import pytest

from wiki_harvester import mcp_server
from wiki_harvester.crawler import CrawlSummary
from wiki_harvester.storage import write_json


def test_rebuild_index_tool_returns_entries(tmp_path):
    (tmp_path / "pages").mkdir()
    (tmp_path / "pages" / "margit.json").write_text(
        json.dumps({"slug": "margit", "title": "Margit", "pageType": "boss"}), encoding="utf-8"
    )
    result = json.loads(mcp_server.rebuild_index(str(tmp_path)))
    assert result == [{"slug": "margit", "title": "Margit", "pageType": "boss"}]
    assert (tmp_path / "by-type.json").exists()


def test_rebuild_index_tool_rejects_missing_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        mcp_server.rebuild_index(str(tmp_path / "missing"))


def test_harvest_tool_reports_summary(monkeypatch, tmp_path):
    def fake_run_crawler(config):
        write_json(config.output_root / "index.json", [{"slug": "home", "title": "Home", "pageType": "other"}])
        return CrawlSummary(processed=1, output_root=config.output_root, pages=["home"])

    monkeypatch.setattr(mcp_server, "run_crawler", fake_run_crawler)
    result = json.loads(mcp_server.harvest("https://wiki.example/", max_pages=1, output_dir=str(tmp_path)))

    assert result["processed"] == 1
    assert result["pages"] == ["home"]
    assert result["outputDir"] == str(tmp_path)
    assert result["index"][0]["slug"] == "home"
