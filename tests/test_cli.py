import json

import pytest

from assocreset import cli
from assocreset.config import ResetConfig
from assocreset.core.cancel import CancelToken
from assocreset.core.errors import ErrorKind
from assocreset.services.logger import cleanup_handlers


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("ASSOCRESET_WORKERS", "ASSOCRESET_LOG_LEVEL", "ASSOCRESET_DEBUG", "ASSOCRESET_LOG_DIR"):
        monkeypatch.delenv(name, raising=False)
    yield
    cleanup_handlers()


def _never_asked(question):
    raise AssertionError(f"unexpected prompt: {question}")


def test_clears_overrides(tmp_path, make_files, fake_store, capsys):
    files = [f.resolve() for f in make_files([f"f{i}.pdf" for i in range(12)] + ["x.jpg"])]
    fake_store.add(*files[:4])
    asked = []

    def accept(question):
        asked.append(question)
        return True

    code = cli.main([str(tmp_path), "-e", "pdf", "--workers", "3", "--seed", "1"], store=fake_store, confirm=accept)

    assert code == cli.EXIT_OK
    assert asked == ["Proceed with file processing?"]
    assert not fake_store.overrides.intersection(str(f) for f in files[:4])
    out = capsys.readouterr().out
    assert "Performance report" in out
    assert "TOTAL" in out


def test_dry_run_changes_nothing(tmp_path, make_files, fake_store, capsys):
    files = [f.resolve() for f in make_files(["a.pdf", "b.pdf"])]
    fake_store.add(*files)

    code = cli.main(["--path", str(tmp_path), "-e", "pdf", "--dry-run", "--verbose", "--no-confirm"], store=fake_store)

    assert code == cli.EXIT_OK
    assert len(fake_store.overrides) == 2
    assert not fake_store.clears
    assert "would clear" in capsys.readouterr().out


def test_zero_hit_sample_skips_full_pass(tmp_path, make_files, fake_store, capsys):
    make_files([f"f{i}.pdf" for i in range(80)])

    code = cli.main([str(tmp_path), "-e", "pdf", "--sample-size", "60", "--no-confirm"], store=fake_store)

    assert code == cli.EXIT_OK
    assert sum(fake_store.checks.values()) == 60
    assert "Nothing to do" in capsys.readouterr().out


def test_declined_confirmation_aborts(tmp_path, make_files, fake_store, capsys):
    files = [f.resolve() for f in make_files([f"f{i}.pdf" for i in range(20)])]
    fake_store.add(*files)
    asked = []

    def decline_estimate(question):
        asked.append(question)
        return question == "Proceed with file processing?"

    code = cli.main([str(tmp_path), "-e", "pdf", "--max-files", "5"], store=fake_store, confirm=decline_estimate)

    assert code == cli.EXIT_OK
    assert len(asked) == 2
    assert "may be affected" in asked[1]
    assert len(fake_store.overrides) == 20
    assert "Aborted." in capsys.readouterr().out


def test_no_confirm_skips_prompt(tmp_path, make_files, fake_store):
    files = [f.resolve() for f in make_files([f"f{i}.pdf" for i in range(20)])]
    fake_store.add(*files)

    code = cli.main(
        [str(tmp_path), "-e", "pdf", "--max-files", "5", "--category-limit", "0", "--no-confirm"],
        store=fake_store,
        confirm=_never_asked,
    )

    assert code == cli.EXIT_OK
    assert not fake_store.overrides


@pytest.mark.parametrize("extra", [[], ["--dry-run"]])
def test_declining_start_prompt_touches_nothing(tmp_path, make_files, fake_store, capsys, extra):
    files = [f.resolve() for f in make_files(["a.pdf", "b.pdf"])]
    fake_store.add(*files)
    asked = []

    def decline(question):
        asked.append(question)
        return False

    code = cli.main([str(tmp_path), "-e", "pdf"] + extra, store=fake_store, confirm=decline)

    assert code == cli.EXIT_OK
    assert asked == ["Proceed with file processing?"]
    assert not fake_store.checks
    assert len(fake_store.overrides) == 2
    assert "Operation cancelled by user." in capsys.readouterr().out


def test_extension_over_limit_is_skipped(tmp_path, make_files, fake_store, capsys):
    pdfs = [f.resolve() for f in make_files([f"f{i}.pdf" for i in range(12)])]
    jpgs = [f.resolve() for f in make_files([f"p{i}.jpg" for i in range(3)])]
    fake_store.add(*pdfs, *jpgs)

    code = cli.main(
        [str(tmp_path), "-e", "pdf", "-e", "jpg", "--category-limit", "10", "--skip-sampling", "--no-confirm"],
        store=fake_store,
    )

    assert code == cli.EXIT_OK
    assert fake_store.overrides == {str(p) for p in pdfs}
    assert "Skipped (over the file limit): .pdf" in capsys.readouterr().out


def test_max_files_is_the_default_extension_limit(tmp_path, make_files, fake_store):
    files = [f.resolve() for f in make_files([f"f{i}.pdf" for i in range(12)])]
    fake_store.add(*files)

    code = cli.main(
        [str(tmp_path), "-e", "pdf", "--max-files", "10", "--skip-sampling", "--no-confirm"], store=fake_store
    )

    assert code == cli.EXIT_OK
    assert len(fake_store.overrides) == 12
    assert not fake_store.clears


def test_cancel_during_sampling_exits_130(tmp_path, make_files, fake_store, capsys):
    files = [f.resolve() for f in make_files([f"f{i}.pdf" for i in range(10)])]
    fake_store.add(*files)
    token = CancelToken()
    token.cancel()
    config = ResetConfig(target_dir=str(tmp_path), categories=["pdf"], no_confirm=True)

    code = cli.execute(config, store=fake_store, confirm=_never_asked, cancel=token)

    assert code == cli.EXIT_CANCELLED
    assert not fake_store.checks
    assert not fake_store.clears
    assert "Cancelled during sampling." in capsys.readouterr().err


def test_failures_give_exit_one_and_json_report(tmp_path, make_files, fake_store_cls):
    data = tmp_path / "data"
    files = [f.resolve() for f in make_files(["a.pdf", "b.pdf", "c.pdf"], root=data)]
    store = fake_store_cls(files, fail_clear={files[1]: ErrorKind.PERMISSION_DENIED})
    report_path = tmp_path / "out" / "run.json"

    code = cli.main(
        [str(data), "-e", "pdf", "--skip-sampling", "--no-parallel", "--no-confirm", "--report", str(report_path)],
        store=store,
    )

    assert code == cli.EXIT_ERRORS
    payload = json.loads(report_path.read_text(encoding="utf-8"))
    assert payload["sample"] is None
    assert payload["metrics"]["total"]["errors"] == 1
    assert [e["path"] for e in payload["errors"]] == [str(files[1])]


def test_missing_directory_is_configuration_error(tmp_path, fake_store, capsys):
    code = cli.main([str(tmp_path / "missing")], store=fake_store)
    assert code == cli.EXIT_CONFIG
    assert "Configuration error" in capsys.readouterr().err


def test_bad_config_file(tmp_path, fake_store):
    cfg = tmp_path / "conf.yaml"
    cfg.write_text("threads: 4\n", encoding="utf-8")
    assert cli.main([str(tmp_path), "--config", str(cfg)], store=fake_store) == cli.EXIT_CONFIG


def test_prompt_yes_no(monkeypatch):
    monkeypatch.setattr("builtins.input", lambda _q: "Y")
    assert cli.prompt_yes_no("go?")
    monkeypatch.setattr("builtins.input", lambda _q: "")
    assert not cli.prompt_yes_no("go?")

    def eof(_q):
        raise EOFError

    monkeypatch.setattr("builtins.input", eof)
    assert not cli.prompt_yes_no("go?")
