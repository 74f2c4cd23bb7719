import pytest

from conftest import FakeEngine, write_mobileprovision
from wdasign import cli
from wdasign.arguments import create_signer_options
from wdasign.commands import serve as serve_command
from wdasign.commands import sign as sign_command
from wdasign.src.core.signer import SignerOptions


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    monkeypatch.setenv("WDASIGN_CONFIG", str(tmp_path / "missing.toml"))


def test_profiles_command_lists_profiles(profiles_dir, monkeypatch):
    write_mobileprovision(profiles_dir / "A.mobileprovision", "1111", "Acme Dev", "Acme")
    monkeypatch.setenv("WDASIGN_PROFILES_DIR", str(profiles_dir))

    assert cli.main(["profiles"]) == 0


def test_profiles_command_reports_missing_directory(tmp_path, monkeypatch):
    monkeypatch.setenv("WDASIGN_PROFILES_DIR", str(tmp_path / "missing"))

    assert cli.main(["profiles"]) == 1


def test_build_arguments_map_to_signer_options():
    args = cli.create_parser().parse_args(
        [
            "build",
            "--profile",
            "dev.mobileprovision",
            "--free-account",
            "--bundle-id",
            "com.acme.wda",
            "--verify",
            "--keep-plugins",
        ]
    )

    assert args.free_account is True
    assert args.bundle_id == "com.acme.wda"
    options = create_signer_options(args)
    assert options.verify is True
    assert options.without_plugins is False
    assert options.with_get_task_allow is True
    assert options.identity is None


def test_default_signer_options_match_plain_invocation():
    args = cli.create_parser().parse_args(["sign", "in.ipa", "--profile", "dev.mobileprovision"])

    assert create_signer_options(args) == SignerOptions()


def test_sign_command_resigns_existing_ipa(tmp_path, profiles_dir, monkeypatch):
    profile = write_mobileprovision(
        profiles_dir / "A.mobileprovision", "1111", "iOS Team Provisioning Profile: com.acme.wda", "Acme"
    )
    ipa = tmp_path / "WebDriverAgent.ipa"
    ipa.write_bytes(b"ipa")
    engine = FakeEngine()
    monkeypatch.setattr(sign_command, "ApplesignEngine", lambda **kwargs: engine)

    assert (
        cli.main(
            ["sign", str(ipa), "--profile", str(profile), "--free-account", "--bundle-id", "com.acme.wda"]
        )
        == 0
    )

    request = engine.requests[0]
    assert request.bundle_id == "com.acme.wda"
    assert request.output_path == tmp_path / "WebDriverAgent-resigned.ipa"
    assert request.output_path.exists()


def test_sign_command_free_account_needs_bundle_id(tmp_path, profiles_dir, monkeypatch):
    profile = write_mobileprovision(
        profiles_dir / "A.mobileprovision", "1111", "XC Wildcard: com.acme.*", "Acme"
    )
    ipa = tmp_path / "WebDriverAgent.ipa"
    ipa.write_bytes(b"ipa")
    engine = FakeEngine()
    monkeypatch.setattr(sign_command, "ApplesignEngine", lambda **kwargs: engine)

    assert cli.main(["sign", str(ipa), "--profile", str(profile), "--free-account"]) == 1
    assert engine.requests == []


def test_sign_command_requires_ipa(tmp_path, profiles_dir):
    profile = write_mobileprovision(profiles_dir / "A.mobileprovision", "1111", "Acme Dev", "Acme")

    assert cli.main(["sign", str(tmp_path / "missing.ipa"), "--profile", str(profile)]) == 1


def test_no_command_prints_help():
    assert cli.main([]) == 1


def test_serve_returns_zero_when_interrupted(monkeypatch):
    def interrupted(session):
        raise KeyboardInterrupt

    monkeypatch.setattr(serve_command, "serve", interrupted)

    assert cli.main(["serve"]) == 0


def test_serve_returns_one_when_startup_fails(monkeypatch):
    def broken_settings(config_path=None):
        raise ValueError("Failed to load config: bad toml")

    served = []
    monkeypatch.setattr(serve_command, "load_settings", broken_settings)
    monkeypatch.setattr(serve_command, "serve", served.append)

    assert cli.main(["serve"]) == 1
    assert served == []


def test_serve_with_missing_explicit_config_fails(tmp_path, monkeypatch):
    served = []
    monkeypatch.setattr(serve_command, "serve", served.append)

    assert cli.main(["serve", "--config", str(tmp_path / "absent.toml")]) == 1
    assert served == []


def test_help_lists_subcommands():
    help_text = cli.create_parser().format_help()

    for command in ("serve", "profiles", "build", "sign"):
        assert command in help_text
