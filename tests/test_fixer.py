from link_checker.aggregate import process_issues
from link_checker.fixer import Fixer, fix_issues, get_rewrite
from link_checker.links import replace_link
from link_checker.issues import (
    DisallowExtension,
    EmptyAnchor,
    MissingAnchor,
    NotOkResponse,
    Redirected,
    WrongExtension,
)


def test_get_rewrite():
    assert get_rewrite(Redirected(from_url="https://a.com/x", to_url="https://a.com/y")) == (
        "https://a.com/x",
        "https://a.com/y",
    )
    assert get_rewrite(EmptyAnchor(reference="./b.md#")) == ("./b.md#", "./b.md")
    assert get_rewrite(
        WrongExtension(reference="./b.html#top", actual=".html", expected=".md")
    ) == ("./b.html#top", "./b.md#top")
    assert get_rewrite(DisallowExtension(reference="./b.md", extension="md")) == ("./b.md", "./b")
    assert get_rewrite(
        MissingAnchor(reference="./b.md#instalation", anchor="instalation", all_anchors=frozenset({"installation"}))
    ) == ("./b.md#instalation", "./b.md#installation")
    assert get_rewrite(MissingAnchor(reference="./b.md#zzz", anchor="zzz", all_anchors=frozenset({"a"}))) is None
    assert get_rewrite(NotOkResponse(reference="https://a.com/", status=404)) is None


def test_fix_rewrites_files_and_is_idempotent(docs_tree):
    root = docs_tree(
        {
            "a.md": "[x](./b.md#instalation)\n[y](./c.html)\n[z](./b.md#)\n",
            "b.md": "# B\n\n## Installation\n",
            "c.md": "# C\n",
        }
    )
    a = str(root / "a.md")
    grouped = process_issues(
        {
            a: [
                MissingAnchor(
                    reference="./b.md#instalation",
                    anchor="instalation",
                    all_anchors=frozenset({"b", "installation"}),
                ),
                WrongExtension(reference="./c.html", actual=".html", expected=".md"),
                EmptyAnchor(reference="./b.md#"),
            ]
        }
    )
    remaining, total = fix_issues(grouped, str(root))
    assert remaining == {}
    assert total == 3
    assert (root / "a.md").read_text() == "[x](./b.md#installation)\n[y](./c.md)\n[z](./b.md)\n"

    # A second pass over the same issues changes nothing
    again, total_again = fix_issues(process_issues({a: []}), str(root))
    assert again == {}
    assert total_again == 0


def test_redirect_fix_propagates_to_anchor_fix(docs_tree):
    root = docs_tree({"a.md": "[x](https://ex.com/old#instal)\n"})
    a = str(root / "a.md")
    grouped = process_issues(
        {
            a: [
                Redirected(from_url="https://ex.com/old", to_url="https://ex.com/new"),
                MissingAnchor(
                    reference="https://ex.com/old#instal",
                    anchor="instal",
                    all_anchors=frozenset({"install"}),
                ),
            ]
        }
    )
    remaining, total = fix_issues(grouped, str(root))
    assert (root / "a.md").read_text() == "[x](https://ex.com/new#install)\n"
    assert remaining == {}
    assert total == 2


def test_unfixable_issues_remain(docs_tree):
    root = docs_tree({"a.md": "[x](https://ex.com/gone)\n[y](./b.md#zzz)\n"})
    a = str(root / "a.md")
    grouped = process_issues(
        {
            a: [
                NotOkResponse(reference="https://ex.com/gone", status=404),
                MissingAnchor(reference="./b.md#zzz", anchor="zzz", all_anchors=frozenset({"b"})),
            ]
        }
    )
    remaining, total = fix_issues(grouped, str(root))
    assert total == 0
    assert list(remaining) == ["not_ok_response", "missing_anchor"]
    assert (root / "a.md").read_text() == "[x](https://ex.com/gone)\n[y](./b.md#zzz)\n"


def test_reference_directory_is_protected(docs_tree):
    root = docs_tree({"ref/api.md": "[z](./b.md#)\n", "guide/ref.md": "[z](./b.md#)\n"})
    fixer = Fixer(str(root))
    assert fixer.is_protected(str(root / "ref" / "api.md"))
    assert not fixer.is_protected(str(root / "guide" / "ref.md"))

    issues = {
        str(root / "ref" / "api.md"): [EmptyAnchor(reference="./b.md#")],
        str(root / "guide" / "ref.md"): [EmptyAnchor(reference="./b.md#")],
    }
    remaining = fixer.fix(process_issues(issues))
    assert fixer.total_fixes == 1
    assert [entry.filepath for entry in remaining["empty_anchor"][0].stack] == [
        str(root / "ref" / "api.md")
    ]
    assert (root / "ref" / "api.md").read_text() == "[z](./b.md#)\n"


def test_replace_link_matches_whole_links_only():
    content = "[a](./b.md#) [b](./b.md#usage) [c](https://x.com/old#top) [d](https://x.com/older)"
    updated, count = replace_link(content, "./b.md#", "./b.md")
    assert count == 1
    assert "[a](./b.md)" in updated and "[b](./b.md#usage)" in updated

    updated, count = replace_link(content, "https://x.com/old", "https://x.com/new")
    assert count == 1
    assert "https://x.com/new#top" in updated and "https://x.com/older" in updated

    content = "[s](#instal) [o](./b.md#instal) [e](https://x.com/y#instal)"
    updated, count = replace_link(content, "#instal", "#install")
    assert count == 1
    assert updated == "[s](#install) [o](./b.md#instal) [e](https://x.com/y#instal)"

    updated, count = replace_link("[a](./b.html) [b](../b.html)", "./b.html", "./b")
    assert (updated, count) == ("[a](./b) [b](../b.html)", 1)


def test_same_page_anchor_fix_leaves_other_files_links_alone(docs_tree):
    root = docs_tree({"a.md": "[self](#instal) [other](./b.md#instal)\n"})
    a = str(root / "a.md")
    grouped = process_issues(
        {a: [MissingAnchor(reference="#instal", anchor="instal", all_anchors=frozenset({"install"}))]}
    )
    remaining, total = fix_issues(grouped, str(root))
    assert total == 1
    assert remaining == {}
    assert (root / "a.md").read_text() == "[self](#install) [other](./b.md#instal)\n"
