from __future__ import annotations

from conftest import FakeFetcher

from photo_eval.knowledge.fetchers import normalize_dropbox_share_url
from photo_eval.knowledge.store import KnowledgeStore, describe_source, is_probably_binary


def _store(fetcher: FakeFetcher, max_chars: int = 12000) -> KnowledgeStore:
    return KnowledgeStore(path_fetcher=fetcher, url_fetcher=fetcher, max_chars=max_chars)


def test_binary_heuristic_flags_null_heavy_payloads():
    assert is_probably_binary(b"\x00" * 100 + b"text" * 10)
    assert is_probably_binary(bytes(range(128, 256)) * 4)


def test_binary_heuristic_accepts_text_and_control_whitespace():
    assert not is_probably_binary(b"")
    assert not is_probably_binary(b"line one\r\n\tline two\x0c\x0b" * 50)
    # 20% exactly is still text
    assert not is_probably_binary(b"\x00" + b"abcd")
    assert is_probably_binary(b"\x00\x00" + b"abcd")


def test_binary_heuristic_only_samples_first_4096_bytes():
    assert not is_probably_binary(b"a" * 4096 + b"\x00" * 10000)


def test_describe_source_variants():
    assert describe_source("/Apps/AI-Inspector/kb/water heaters.md") == "/Apps/AI-Inspector/kb/water heaters.md"
    assert describe_source("https://example.com/docs/IAQ%20guide.txt") == "IAQ guide.txt"
    assert describe_source("https://example.com/") == "example.com"
    assert describe_source("") == "Dropbox source"


def test_dropbox_share_links_become_direct_downloads():
    url = normalize_dropbox_share_url("https://www.dropbox.com/s/abc/kb.txt?dl=0&raw=1&rlkey=x")
    assert "dl=1" in url
    assert "raw=" not in url
    assert "rlkey=x" in url
    assert normalize_dropbox_share_url("https://example.com/kb.txt") == "https://example.com/kb.txt"


def test_load_routes_paths_and_urls_and_labels_blocks():
    path_fetcher = FakeFetcher({"/kb/fans.md": b"Fans move air."})
    url_fetcher = FakeFetcher({"https://example.com/iaq.txt": b"PM2.5 limits."})
    store = KnowledgeStore(path_fetcher=path_fetcher, url_fetcher=url_fetcher)

    bundle = store.load(["/kb/fans.md", "https://example.com/iaq.txt"])

    assert path_fetcher.calls == ["/kb/fans.md"]
    assert url_fetcher.calls == ["https://example.com/iaq.txt"]
    assert bundle.text == "From /kb/fans.md:\nFans move air.\n\nFrom iaq.txt:\nPM2.5 limits."
    assert bundle.sources == ("/kb/fans.md", "iaq.txt")


def test_failed_sources_are_skipped_and_never_refetched():
    fetcher = FakeFetcher(
        {"/bin.pdf": b"\x00\x01\x02\x03" * 100, "/blank.txt": b"   \n", "/ok.txt": b"useful"},
        raises={"/down.txt"},
    )
    store = _store(fetcher)

    first = store.load(["/down.txt", "/bin.pdf", "/blank.txt", "/missing.txt", "/ok.txt"])
    second = store.load(["/down.txt", "/bin.pdf", "/blank.txt", "/missing.txt", "/ok.txt"])

    assert first == second
    assert first.text == "From /ok.txt:\nuseful"
    assert fetcher.calls == ["/down.txt", "/bin.pdf", "/blank.txt", "/missing.txt", "/ok.txt"]


def test_truncation_respects_budget_but_lists_every_loaded_source():
    fetcher = FakeFetcher({"/a": b"a" * 7000, "/b": b"b" * 7000, "/c": b"c" * 7000})
    store = _store(fetcher)

    bundle = store.load(["/a", "/b", "/c"])

    blocks = bundle.text.split("\n\n")
    assert len(blocks) == 2
    document_chars = sum(len(block.split(":\n", 1)[1]) for block in blocks)
    assert document_chars == 12000
    assert blocks[1] == "From /b:\n" + "b" * 5000
    assert "c" not in bundle.text.replace("From", "")
    assert bundle.sources == ("/a", "/b", "/c")


def test_source_cut_by_budget_is_still_listed_but_failures_are_not():
    fetcher = FakeFetcher({"/a": b"a" * 12000, "/b": b"bbb"}, raises={"/broken"})
    bundle = _store(fetcher).load(["/a", "/broken", "/b", "/missing"])

    assert bundle.text == "From /a:\n" + "a" * 12000
    assert bundle.sources == ("/a", "/b")


def test_empty_source_list_yields_empty_bundle():
    bundle = _store(FakeFetcher()).load([])
    assert bundle.text == ""
    assert bundle.sources == ()
