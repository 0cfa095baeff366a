"""CLI tests using typer's CliRunner."""
import json

import pytest
from typer.testing import CliRunner

from defermistake.analyzer.analysis import DeferMistakeAnalyzer
from defermistake.main import app, discover_go_files, run_check


runner = CliRunner()

BAD = """package main

import (
\t"fmt"
\t"time"
)

func main() {
\tstart := time.Now()
\tdefer fmt.Println(time.Since(start))
}
"""

GOOD = """package main

import (
\t"fmt"
\t"time"
)

func main() {
\tstart := time.Now()
\tdefer func() { fmt.Println(time.Since(start)) }()
}
"""


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "project"
    (root / "cmd").mkdir(parents=True)
    (root / "cmd" / "bad.go").write_text(BAD)
    (root / "good.go").write_text(GOOD)
    (root / "vendor" / "lib").mkdir(parents=True)
    (root / "vendor" / "lib" / "lib.go").write_text(BAD)
    return root


def test_check_reports_and_fails(project):
    result = runner.invoke(app, ["check", str(project), "--no-cache"])

    assert result.exit_code == 1
    assert "bad.go:10:20: defer func should not evaluate time.Since" in result.output
    assert "lib.go" not in result.output


def test_check_clean_project_exits_zero(project):
    result = runner.invoke(app, ["check", str(project / "good.go"), "--no-cache"])

    assert result.exit_code == 0
    assert "No deferred eager evaluation found" in result.output


def test_exit_zero(project):
    result = runner.invoke(app, ["check", str(project), "--no-cache", "--exit-zero"])

    assert result.exit_code == 0


def test_json_output(project):
    result = runner.invoke(app, ["check", str(project), "--no-cache", "--format", "json"])

    payload = json.loads(result.stdout)
    assert payload["analyzer"] == "defermistake"
    assert payload["files_checked"] == 2
    assert [(d["line"], d["column"], d["function"]) for d in payload["diagnostics"]] == [(10, 20, "time.Since")]


def test_table_output(project):
    result = runner.invoke(app, ["check", str(project), "--no-cache", "--format", "table"])

    assert result.exit_code == 1
    assert "time.Since" in result.output
    assert "Found 1 problem(s)" in result.output


def test_include_vendored(project):
    result = runner.invoke(app, ["check", str(project), "--no-cache", "--include-vendored", "--format", "json"])

    assert len(json.loads(result.stdout)["diagnostics"]) == 2


def test_extra_flag(project):
    result = runner.invoke(app, ["check", str(project), "--no-cache", "--format", "json", "--flag", "fmt.Println"])

    functions = [d["function"] for d in json.loads(result.stdout)["diagnostics"]]
    assert functions == ["fmt.Println", "time.Since"]


def test_invalid_flag(project):
    result = runner.invoke(app, ["check", str(project), "--flag", "Println"])

    assert result.exit_code == 1
    assert "Invalid function spec" in result.output


def test_invalid_format(project):
    result = runner.invoke(app, ["check", str(project), "--format", "xml"])

    assert result.exit_code == 1
    assert "Invalid format" in result.output


def test_missing_path(tmp_path):
    result = runner.invoke(app, ["check", str(tmp_path / "nope")])

    assert result.exit_code == 1
    assert "Path does not exist" in result.output


def test_cache_is_used_and_cleared(project, monkeypatch):
    first = runner.invoke(app, ["check", str(project), "--format", "json"])

    def fail(self, file_path):
        raise AssertionError(f"{file_path} was analyzed again")

    monkeypatch.setattr(DeferMistakeAnalyzer, "analyze_file", fail)
    second = runner.invoke(app, ["check", str(project), "--format", "json"])

    assert second.exception is None or isinstance(second.exception, SystemExit)
    assert second.exit_code == 1
    assert json.loads(first.stdout) == json.loads(second.stdout)
    assert (project / ".defermistake_cache" / "analysis.db").exists()

    stats = runner.invoke(app, ["cache", "stats", str(project)])
    assert "Files Cached" in stats.output

    cleared = runner.invoke(app, ["cache", "clear", str(project)])
    assert cleared.exit_code == 0
    assert "Cache cleared" in cleared.output


def test_rules_lists_registry():
    result = runner.invoke(app, ["rules", "--flag", "example.com/m.Elapsed"])

    assert result.exit_code == 0
    assert "Since" in result.output
    assert "Elapsed" in result.output


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert "defermistake" in result.output


def test_discover_skips_excluded_directories(project):
    files = discover_go_files([project])

    assert sorted(path.name for path in files) == ["bad.go", "good.go"]


def test_discover_deduplicates_and_keeps_explicit_files(project):
    explicit = project / "vendor" / "lib" / "lib.go"
    files = discover_go_files([explicit, project, explicit])

    assert files[0] == explicit
    assert len(files) == 3


def test_directory_named_like_go_file_is_not_checked(project):
    (project / "pkg.go").mkdir()
    (project / "pkg.go" / "inner.go").write_text(GOOD)

    result = runner.invoke(app, ["check", str(project), "--no-cache", "--format", "json"])

    payload = json.loads(result.stdout)
    assert payload["files_checked"] == 3
    assert len(payload["diagnostics"]) == 1


def test_discover_matches_extension_case_insensitively(tmp_path):
    (tmp_path / "MAIN.GO").write_text(GOOD)
    (tmp_path / "notes.txt").write_text("go")

    assert [path.name for path in discover_go_files([tmp_path])] == ["MAIN.GO"]
    assert discover_go_files([tmp_path / "notes.txt"]) == []


def test_unreadable_file_warning_goes_to_stderr(tmp_path, capsys):
    diagnostics = run_check([tmp_path / "gone.go"], DeferMistakeAnalyzer(), None, show_progress=False)

    captured = capsys.readouterr()
    assert diagnostics == []
    assert captured.out == ""
    assert "[Check] Warning: Skipped unreadable file" in captured.err


@pytest.mark.parametrize("command", [["cache", "clear"], ["cache", "stats"], ["rules"]])
def test_invalid_configured_flag_is_reported(project, monkeypatch, command):
    monkeypatch.setenv("DEFERMISTAKE_FLAGGED", "Println")

    result = runner.invoke(app, command + ([str(project)] if command[0] == "cache" else []))

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "Invalid function spec" in result.output
