from typer.testing import CliRunner

from link_checker.main import app

runner = CliRunner()


def test_website_without_issues(docs_tree):
    root = docs_tree({"README.md": "# Home\n\n[Guide](./guide.md#setup)\n", "guide.md": "## Setup\n"})
    result = runner.invoke(app, ["website", str(root)])
    assert result.exit_code == 0, result.output
    assert "Found no issues" in result.output


def test_website_with_issues_writes_report(docs_tree, tmp_path):
    root = docs_tree({"docs/README.md": "[Broken](./missing.md)\n"})
    report = tmp_path / "report.md"
    result = runner.invoke(app, ["website", str(root / "docs"), "--report", str(report)])
    assert result.exit_code == 1, result.output
    assert "Missing files" in report.read_text(encoding="utf-8")


def test_website_fix(docs_tree):
    root = docs_tree({"README.md": "[Guide](./guide.html)\n", "guide.md": "# Guide\n"})
    result = runner.invoke(app, ["website", str(root), "--fix"])
    assert result.exit_code == 0, result.output
    assert (root / "README.md").read_text() == "[Guide](./guide.md)\n"


def test_website_debug_cache(docs_tree):
    root = docs_tree({"README.md": "[Broken](./missing.md)\n"})
    first = runner.invoke(app, ["website", str(root), "--debug"])
    assert first.exit_code == 1
    assert (root / ".link-checker").exists()

    # The cached issues are reported even though the document was fixed by hand
    (root / "README.md").write_text("nothing\n")
    second = runner.invoke(app, ["website", str(root), "--debug"])
    assert second.exit_code == 1


def test_invalid_configuration_exits_with_2(docs_tree):
    root = docs_tree({"README.md": "# Home\n"})
    result = runner.invoke(app, ["website", str(root), "--index-file", "index.html"])
    assert result.exit_code == 2


def test_doctor(docs_tree):
    root = docs_tree({"README.md": "# Home\n"})
    result = runner.invoke(app, ["doctor", str(root)])
    assert result.exit_code == 0, result.output
    assert "Python Version" in result.output
    missing = runner.invoke(app, ["doctor", str(root / "nope")])
    assert missing.exit_code == 2
