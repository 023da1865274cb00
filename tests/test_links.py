from link_checker.links import (
    LINK_ANCHOR,
    LINK_EXTERNAL,
    LINK_IGNORED,
    LINK_LOCAL,
    LINK_UNKNOWN,
    can_parse_url,
    classify_link,
    normalize_url,
    parse_link,
    transform_url,
)


def test_parse_link_splits_root_and_anchor():
    assert parse_link("./guide.md#setup") == ("./guide.md", "setup")
    assert parse_link("./guide.md") == ("./guide.md", None)
    assert parse_link("https://example.com/page#intro") == ("https://example.com/page", "intro")


def test_parse_link_empty_anchor_is_not_none():
    root, anchor = parse_link("./guide.md#")
    assert root == "./guide.md"
    assert anchor == ""


def test_local_links_split_on_last_hash():
    # An encoded file name can itself contain a '#'
    assert parse_link("./a#b.md#c") == ("./a#b.md", "c")


def test_absolute_urls_split_on_first_hash():
    assert parse_link("https://example.com/p#a#b") == ("https://example.com/p", "a#b")


def test_anchor_is_percent_decoded_root_is_not():
    root, anchor = parse_link("./my%20file.md#caf%C3%A9")
    assert root == "./my%20file.md"
    assert anchor == "café"


def test_invalid_percent_encoding_is_kept():
    _, anchor = parse_link("https://example.com/p#bad%FF")
    assert anchor == "bad%FF"


def test_classify_link():
    assert classify_link("https://example.com/x") == LINK_EXTERNAL
    assert classify_link("HTTP://example.com/x") == LINK_EXTERNAL
    assert classify_link("./guide.md") == LINK_LOCAL
    assert classify_link("../guide.md") == LINK_LOCAL
    assert classify_link("/guide/") == LINK_LOCAL
    assert classify_link("#intro") == LINK_ANCHOR
    assert classify_link("#") == LINK_ANCHOR
    assert classify_link("mailto:someone@example.com") == LINK_IGNORED
    assert classify_link("ftp://example.com/file") == LINK_UNKNOWN
    assert classify_link("guide.md") == LINK_UNKNOWN


def test_http_without_host_is_not_external():
    assert not can_parse_url("https://")
    assert classify_link("https://") == LINK_UNKNOWN


def test_drive_letters_are_not_schemes():
    assert not can_parse_url("C:/docs/file.md")
    assert can_parse_url("ftp://example.com")


def test_transform_url_rewrites_telegram_short_host():
    assert transform_url("https://t.me/grammyjs") == "https://telegram.me/grammyjs"
    assert transform_url("https://example.com/t.me") == "https://example.com/t.me"


def test_normalize_url():
    assert normalize_url("HTTPS://Example.COM") == "https://example.com/"
    assert normalize_url("https://example.com/A?b=1") == "https://example.com/A?b=1"
