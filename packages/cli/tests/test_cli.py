"""Tests for the CLI entry point."""

import json

import pytest
from click.testing import CliRunner

import safepost_cli.cli as cli_module
from safepost_cli.cli import _build_store, main
from safepost_cli.commands import check, delete, history, init, last, show, stats, usage
from safepost_cli.identity import resolve_user_id
from safepost_core.config import DEFAULT_CONFIG
from safepost_core.models import ImageInput
from safepost_core.providers.base import BaseAnalyzer
from safepost_store.memory import MemoryStore
from safepost_store.models import CheckRecord
from safepost_store.sqlite import SQLiteStore

USER = "dr-lee"


@pytest.fixture(autouse=True)
def standard_terminal_width(monkeypatch):
    """Render every command as it would appear in an 80-column terminal."""
    for module in (cli_module, check, delete, history, init, last, show, stats, usage):
        monkeypatch.setattr(module.console, "width", 80)


def _payload(status="COMPLIANT", issues=()):
    return {
        "status": status,
        "summary": f"Summary {status.lower()}",
        "overallVerdict": "Verdict text",
        "issues": [
            {
                "guidelineReference": ref,
                "finding": finding,
                "severity": severity,
                "recommendation": "Reword it",
            }
            for ref, finding, severity in issues
        ],
    }


FLAGGED = _payload("NON_COMPLIANT", [("Section 133", "Uses a testimonial", "Critical")])


class _StubAnalyzer(BaseAnalyzer):
    MAX_RETRIES = 1

    def __init__(self, payload=None, rewrites=None, fail=False):
        self.payload = payload or _payload()
        self.rewrites = rewrites or []
        self.fail = fail
        self.calls = []

    async def _call_api(self, system_prompt, user_prompt, image, max_tokens):
        self.calls.append((system_prompt, user_prompt, image))
        if self.fail:
            raise RuntimeError("API down")
        if system_prompt is None:
            return json.dumps(self.rewrites)
        return json.dumps(self.payload)


def _make_config(tmp_path, model="anthropic", anthropic_key="ant", openai_key=None, plan="professional", store="sqlite"):
    return {
        **DEFAULT_CONFIG,
        "model": model,
        "plan": plan,
        "store": store,
        "user_id": USER,
        "session_path": str(tmp_path / "session.json"),
        "anthropic_api_key": anthropic_key,
        "openai_api_key": openai_key,
        "plan_limits": {},
        "history_limits": {},
    }


def _patch_common(mocker, tmp_path, config=None, analyzer=None, store=None):
    """Patch load_config, _build_store and get_analyzer for most tests.

    Each invocation gets a fresh SQLiteStore on the same file because the CLI
    closes its store when the command finishes.
    """
    cfg = config or _make_config(tmp_path)
    db_path = str(tmp_path / "checks.db")
    mocker.patch("safepost_core.config.load_config", return_value=cfg)
    if store is not None:
        mocker.patch("safepost_cli.cli._build_store", return_value=store)
    else:
        mocker.patch("safepost_cli.cli._build_store", side_effect=lambda _config: SQLiteStore(db_path=db_path))
    analyzer = analyzer or _StubAnalyzer()
    mocker.patch("safepost_cli.commands.check.get_analyzer", return_value=analyzer)
    return cfg, analyzer


def _open_db(tmp_path):
    return SQLiteStore(db_path=str(tmp_path / "checks.db"))


def _seed(tmp_path, n, user_id=USER, result_json=None, status="non_compliant", score=75):
    store = _open_db(tmp_path)
    records = [
        store.insert(
            CheckRecord(
                user_id=user_id,
                content_text=f"post {i}",
                overall_status=status,
                compliance_score=score,
                result_json=result_json or {},
            )
        )
        for i in range(n)
    ]
    store.close()
    return records


class TestCheckValidation:
    def test_missing_anthropic_key(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path, config=_make_config(tmp_path, anthropic_key=None))

        result = CliRunner().invoke(main, ["check", "Book now"])
        assert result.exit_code != 0
        assert "ANTHROPIC_API_KEY" in result.output

    def test_missing_openai_key(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path)

        result = CliRunner().invoke(main, ["check", "--model", "openai", "Book now"])
        assert result.exit_code != 0
        assert "OPENAI_API_KEY" in result.output

    def test_requires_content(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path)

        result = CliRunner().invoke(main, ["check"])
        assert result.exit_code != 0
        assert "Provide the post text" in result.output

    def test_rejects_argument_and_file_together(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path)
        post = tmp_path / "post.txt"
        post.write_text("From file")

        result = CliRunner().invoke(main, ["check", "Inline", "--file", str(post)])
        assert result.exit_code != 0
        assert "not both" in result.output

    def test_rejects_non_image_attachment(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path)
        notes = tmp_path / "notes.txt"
        notes.write_text("hello")

        result = CliRunner().invoke(main, ["check", "Post", "--image", str(notes)])
        assert result.exit_code != 0
        assert "does not look like an image" in result.output


class TestCheckCommand:
    def test_compliant_check_is_recorded(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path)

        result = CliRunner().invoke(main, ["check", "Flu shots available this week"])

        assert result.exit_code == 0, result.output
        assert "Compliant" in result.output
        assert "1/30" in result.output
        store = _open_db(tmp_path)
        records = store.select_by_user(USER)
        assert len(records) == 1
        assert records[0].content_text == "Flu shots available this week"
        assert records[0].overall_status == "compliant"
        assert records[0].compliance_score == 100

    def test_flagged_check_lists_issues_and_score(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path, analyzer=_StubAnalyzer(FLAGGED))

        result = CliRunner().invoke(main, ["check", "'Best clinic ever' - a patient"])

        assert result.exit_code == 0, result.output
        assert "Non-compliant" in result.output
        assert "Uses a testimonial" in result.output
        record = _open_db(tmp_path).select_by_user(USER)[0]
        assert record.overall_status == "non_compliant"
        assert record.compliance_score == 75

    def test_content_type_and_platform_stored(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path)

        CliRunner().invoke(main, ["check", "Post", "--content-type", "story", "--platform", "instagram"])

        record = _open_db(tmp_path).select_by_user(USER)[0]
        assert record.content_type == "story"
        assert record.platform == "instagram"

    def test_reads_content_from_file(self, mocker, tmp_path):
        _, analyzer = _patch_common(mocker, tmp_path)
        post = tmp_path / "post.txt"
        post.write_text("Post from a file")

        result = CliRunner().invoke(main, ["check", "--file", str(post)])

        assert result.exit_code == 0, result.output
        assert "Post from a file" in analyzer.calls[0][1]

    def test_image_passed_to_analyzer(self, mocker, tmp_path):
        _, analyzer = _patch_common(mocker, tmp_path)
        image = tmp_path / "before_after.png"
        image.write_bytes(b"\x89PNG fake")

        result = CliRunner().invoke(main, ["check", "Before and after", "--image", str(image)])

        assert result.exit_code == 0, result.output
        sent = analyzer.calls[0][2]
        assert isinstance(sent, ImageInput)
        assert sent.mime_type == "image/png"

    def test_quota_exceeded_exits_without_calling_model(self, mocker, tmp_path):
        _seed(tmp_path, 3)
        _, analyzer = _patch_common(mocker, tmp_path, config=_make_config(tmp_path, plan="starter"))

        result = CliRunner().invoke(main, ["check", "One more post"])

        assert result.exit_code == 1
        assert "used all 3" in result.output
        assert analyzer.calls == []
        assert _open_db(tmp_path).count_by_user(USER) == 3

    def test_analysis_failure_exits_and_records_nothing(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path, analyzer=_StubAnalyzer(fail=True))

        result = CliRunner().invoke(main, ["check", "Post"])

        assert result.exit_code == 1
        assert "Failed to analyze post" in result.output
        assert _open_db(tmp_path).count_by_user(USER) == 0

    def test_off_topic_content_exits(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path, analyzer=_StubAnalyzer(_payload("NOT_HEALTHCARE")))

        result = CliRunner().invoke(main, ["check", "Selling my bike"])

        assert result.exit_code == 1
        assert "Summary not_healthcare" in result.output
        assert _open_db(tmp_path).count_by_user(USER) == 0

    def test_rewrite_flag_prints_alternatives(self, mocker, tmp_path):
        rewrites = [{"optionTitle": "Minimal Edit", "content": "Book a consult", "explanation": "Quote removed"}]
        _patch_common(mocker, tmp_path, analyzer=_StubAnalyzer(FLAGGED, rewrites=rewrites))

        result = CliRunner().invoke(main, ["check", "Post", "--rewrite"])

        assert result.exit_code == 0, result.output
        assert "Minimal Edit" in result.output
        assert "Book a consult" in result.output

    def test_rewrite_skipped_for_compliant_post(self, mocker, tmp_path):
        _, analyzer = _patch_common(mocker, tmp_path)

        result = CliRunner().invoke(main, ["check", "Post", "--rewrite"])

        assert "already compliant" in result.output
        assert len(analyzer.calls) == 1


class TestLastAndReset:
    def test_last_shows_previous_result(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path, analyzer=_StubAnalyzer(FLAGGED))
        runner = CliRunner()
        runner.invoke(main, ["check", "Guaranteed pain free"])

        result = runner.invoke(main, ["last"])

        assert result.exit_code == 0, result.output
        assert "Guaranteed pain free" in result.output
        assert "Uses a testimonial" in result.output

    def test_reset_clears_saved_result(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path)
        runner = CliRunner()
        runner.invoke(main, ["check", "Post"])

        assert "Cleared" in runner.invoke(main, ["reset"]).output
        assert "No saved result" in runner.invoke(main, ["last"]).output

    def test_last_without_any_check(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path)
        assert "No saved result" in CliRunner().invoke(main, ["last"]).output


class TestHistoryCommand:
    def test_shows_table_when_records_exist(self, mocker, tmp_path):
        _seed(tmp_path, 2)
        _patch_common(mocker, tmp_path)

        result = CliRunner().invoke(main, ["history"])

        assert result.exit_code == 0, result.output
        assert "post 0" in result.output
        assert "post 1" in result.output
        assert "non_compliant" in result.output

    def test_history_capped_by_plan(self, mocker, tmp_path):
        _seed(tmp_path, 7)
        _patch_common(mocker, tmp_path, config=_make_config(tmp_path, plan="starter"))

        result = CliRunner().invoke(main, ["history"])

        assert result.output.count("post ") == 5
        assert "5 most recent" in result.output

    def test_limit_applied(self, mocker, tmp_path):
        _seed(tmp_path, 3)
        _patch_common(mocker, tmp_path)

        result = CliRunner().invoke(main, ["history", "--limit", "1"])

        assert result.output.count("post ") == 1

    def test_other_users_checks_hidden(self, mocker, tmp_path):
        _seed(tmp_path, 2, user_id="someone-else")
        _patch_common(mocker, tmp_path)

        result = CliRunner().invoke(main, ["history"])

        assert "No compliance checks found" in result.output

    def test_errors_when_memory_store(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path, store=MemoryStore())

        result = CliRunner().invoke(main, ["history"])

        assert result.exit_code != 0
        assert "No store configured" in result.output


class TestShowCommand:
    def test_shows_record_and_makes_it_current(self, mocker, tmp_path):
        record = _seed(tmp_path, 1, result_json=FLAGGED)[0]
        _patch_common(mocker, tmp_path)
        runner = CliRunner()

        result = runner.invoke(main, ["show", record.id])

        assert result.exit_code == 0, result.output
        assert "Uses a testimonial" in result.output
        assert "post 0" in runner.invoke(main, ["last"]).output

    def test_unknown_id_exits(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path)

        result = CliRunner().invoke(main, ["show", "999"])

        assert result.exit_code == 1
        assert "No check 999 found" in result.output

    def test_other_users_check_not_shown(self, mocker, tmp_path):
        record = _seed(tmp_path, 1, user_id="someone-else", result_json=FLAGGED)[0]
        _patch_common(mocker, tmp_path)

        result = CliRunner().invoke(main, ["show", record.id])

        assert result.exit_code == 1

    def test_unreadable_result_exits(self, mocker, tmp_path):
        record = _seed(tmp_path, 1, result_json={"summary": "no status"})[0]
        _patch_common(mocker, tmp_path)

        result = CliRunner().invoke(main, ["show", record.id])

        assert result.exit_code == 1
        assert "no readable result" in result.output


class TestDeleteCommand:
    def test_deletes_and_frees_allowance(self, mocker, tmp_path):
        records = _seed(tmp_path, 3)
        _patch_common(mocker, tmp_path, config=_make_config(tmp_path, plan="starter"))

        result = CliRunner().invoke(main, ["delete", records[0].id, "--yes"])

        assert result.exit_code == 0, result.output
        assert f"Deleted check {records[0].id}" in result.output
        assert "2/3" in result.output
        assert _open_db(tmp_path).count_by_user(USER) == 2

    def test_unknown_id_exits(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path)

        result = CliRunner().invoke(main, ["delete", "42", "--yes"])

        assert result.exit_code == 1
        assert "No check 42 found" in result.output

    def test_declined_confirmation_keeps_record(self, mocker, tmp_path):
        record = _seed(tmp_path, 1)[0]
        _patch_common(mocker, tmp_path)

        result = CliRunner().invoke(main, ["delete", record.id], input="n\n")

        assert result.exit_code != 0
        assert _open_db(tmp_path).count_by_user(USER) == 1

    def test_cannot_delete_other_users_check(self, mocker, tmp_path):
        record = _seed(tmp_path, 1, user_id="someone-else")[0]
        _patch_common(mocker, tmp_path)

        result = CliRunner().invoke(main, ["delete", record.id, "--yes"])

        assert result.exit_code == 1
        assert _open_db(tmp_path).count_by_user("someone-else") == 1


class TestUsageCommand:
    def test_shows_used_and_remaining(self, mocker, tmp_path):
        _seed(tmp_path, 2)
        _patch_common(mocker, tmp_path, config=_make_config(tmp_path, plan="starter"))

        result = CliRunner().invoke(main, ["usage"])

        assert result.exit_code == 0, result.output
        assert "SafePost Starter" in result.output
        assert "2/3" in result.output
        assert "Monthly limit reached" not in result.output

    def test_at_limit_warns(self, mocker, tmp_path):
        _seed(tmp_path, 3)
        _patch_common(mocker, tmp_path, config=_make_config(tmp_path, plan="free"))

        result = CliRunner().invoke(main, ["usage"])

        assert "Monthly limit reached" in result.output

    def test_unlimited_plan(self, mocker, tmp_path):
        _seed(tmp_path, 4)
        _patch_common(mocker, tmp_path, config=_make_config(tmp_path, plan="ultra"))

        result = CliRunner().invoke(main, ["usage"])

        assert "unlimited" in result.output

    def test_refresh_bypasses_cache(self, mocker, tmp_path):
        _seed(tmp_path, 1)
        _patch_common(mocker, tmp_path)
        runner = CliRunner()
        runner.invoke(main, ["usage"])
        _seed(tmp_path, 1)

        assert "1/30" in runner.invoke(main, ["usage"]).output
        assert "2/30" in runner.invoke(main, ["usage", "--refresh"]).output


class TestStatsCommand:
    def test_shows_stats_when_records_exist(self, mocker, tmp_path):
        _seed(tmp_path, 2, result_json=FLAGGED)
        _seed(tmp_path, 1, status="compliant", score=100)
        _patch_common(mocker, tmp_path)

        result = CliRunner().invoke(main, ["stats"])

        assert result.exit_code == 0, result.output
        assert "Checks:         3" in result.output
        assert "Average score:  83.3" in result.output
        assert "Section 133" in result.output

    def test_empty_message_when_no_records(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path)

        result = CliRunner().invoke(main, ["stats"])

        assert "No compliance checks found" in result.output

    def test_errors_when_memory_store(self, mocker, tmp_path):
        _patch_common(mocker, tmp_path, store=MemoryStore())

        result = CliRunner().invoke(main, ["stats"])

        assert result.exit_code != 0
        assert "No store configured" in result.output


class TestBuildStore:
    def test_returns_memory_by_default(self):
        assert isinstance(_build_store({}), MemoryStore)

    def test_returns_memory_when_explicitly_set(self):
        assert isinstance(_build_store({"store": "memory"}), MemoryStore)

    def test_returns_sqlite_store(self, tmp_path):
        store = _build_store({"store": "sqlite", "store_path": str(tmp_path / "test.db")})
        assert isinstance(store, SQLiteStore)
        store.close()

    def test_sqlite_uses_default_path_when_not_specified(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        store = _build_store({"store": "sqlite"})
        assert isinstance(store, SQLiteStore)
        store.close()
        assert (tmp_path / ".safepost.db").exists()

    def test_falls_back_to_memory_for_unknown_store(self):
        assert isinstance(_build_store({"store": "gist"}), MemoryStore)


class TestResolveUserId:
    def test_returns_configured_user_id(self):
        assert resolve_user_id({"user_id": "dr-jones"}) == "dr-jones"

    def test_falls_back_to_login_name(self, monkeypatch):
        monkeypatch.setattr("safepost_cli.identity.getpass.getuser", lambda: "practitioner")
        assert resolve_user_id({"user_id": None}) == "practitioner"

    @pytest.mark.parametrize("error", [KeyError("uid"), OSError("no login")])
    def test_falls_back_to_local_when_login_unavailable(self, monkeypatch, error):
        def _raise():
            raise error

        monkeypatch.setattr("safepost_cli.identity.getpass.getuser", _raise)
        assert resolve_user_id({}) == "local"


class TestInitCommand:
    def test_writes_safepost_yml(self, tmp_path, monkeypatch):
        import yaml

        monkeypatch.chdir(tmp_path)

        result = CliRunner().invoke(main, ["init"], input="openai\nprofessional\nsqlite\n.safepost.db\n")

        assert result.exit_code == 0, result.output
        config = yaml.safe_load((tmp_path / ".safepost.yml").read_text())
        assert config == {"model": "openai", "plan": "professional", "store": "sqlite"}
        assert "OPENAI_API_KEY" in result.output

    def test_custom_sqlite_path_and_user(self, tmp_path, monkeypatch):
        import yaml

        monkeypatch.chdir(tmp_path)

        CliRunner().invoke(
            main, ["init", "--user-id", "dr-lee"], input="anthropic\nultra\nsqlite\ndata/checks.db\n"
        )

        config = yaml.safe_load((tmp_path / ".safepost.yml").read_text())
        assert config["store_path"] == "data/checks.db"
        assert config["user_id"] == "dr-lee"

    def test_preserves_existing_keys(self, tmp_path, monkeypatch):
        import yaml

        monkeypatch.chdir(tmp_path)
        (tmp_path / ".safepost.yml").write_text("platform: instagram\nmodel: openai\n")

        CliRunner().invoke(main, ["init"], input="anthropic\nstarter\nmemory\n")

        config = yaml.safe_load((tmp_path / ".safepost.yml").read_text())
        assert config["platform"] == "instagram"
        assert config["model"] == "anthropic"
        assert config["store"] == "memory"
