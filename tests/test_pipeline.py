import threading

import pytest

from conftest import FakeEngine, FakeXcodebuild, write_mobileprovision
from wdasign.src.core.builder import Builder
from wdasign.src.core.pipeline import BuildSignPipeline
from wdasign.src.core.signer import Signer
from wdasign.src.errors import BuildError, PipelineBusyError, ValidationError
from wdasign.src.ipa.provisioning_profile_locator import parse_profile
from wdasign.src.utils.config_loader import Settings


@pytest.fixture
def profile(profiles_dir):
    return parse_profile(
        write_mobileprovision(
            profiles_dir / "free.mobileprovision",
            "1111",
            "iOS Team Provisioning Profile: com.acme.wda",
            "Acme",
        )
    )


def make_pipeline(tmp_path, xcodebuild=None, engine=None):
    settings = Settings(project_search_root=tmp_path)
    return BuildSignPipeline(
        settings,
        builder=Builder(runner=xcodebuild or FakeXcodebuild()),
        signer=Signer(engine=engine or FakeEngine()),
    )


def test_runs_every_stage_in_order(tmp_path, wda_project, profile):
    xcodebuild = FakeXcodebuild()
    engine = FakeEngine()
    pipeline = make_pipeline(tmp_path, xcodebuild, engine)
    events = []

    result = pipeline.run(
        profile,
        is_free_account=True,
        bundle_id="com.acme.wda",
        project_path=wda_project,
        on_event=lambda kind, message: events.append(kind),
    )

    products = wda_project / "appium_wda_ios" / "Build" / "Products" / "Debug-iphoneos"
    assert len(xcodebuild.calls) == 1
    assert result.project_path == wda_project
    assert result.ipa_path == products / "Payload.ipa"
    assert result.resigned_ipa_path == products / "Payload-resigned.ipa"
    assert result.resigned_ipa_path.exists()
    assert result.bundle_id == "com.acme.wda"

    request = engine.requests[0]
    assert request.mobileprovision == profile.file_path
    assert request.bundle_id == "com.acme.wda"
    assert events == ["message", "warning"]

    # Frameworks were stripped before packaging
    app = products / "Payload" / "WebDriverAgentRunner-Runner.app"
    assert list((app / "Frameworks").iterdir()) == []


def test_finds_project_when_not_given(tmp_path, wda_project, profile):
    pipeline = make_pipeline(tmp_path)

    result = pipeline.run(profile, is_free_account=False)

    assert result.project_path == wda_project
    assert result.bundle_id is None


def test_custom_output_path(tmp_path, wda_project, profile):
    output = tmp_path / "out" / "wda.ipa"

    result = make_pipeline(tmp_path).run(
        profile, is_free_account=False, project_path=wda_project, output_path=output
    )

    assert result.resigned_ipa_path == output
    assert output.exists()


@pytest.mark.parametrize("bundle_id", [None, "", "  "])
def test_free_account_without_bundle_id_never_builds(tmp_path, wda_project, profile, bundle_id):
    xcodebuild = FakeXcodebuild()
    pipeline = make_pipeline(tmp_path, xcodebuild)

    with pytest.raises(ValidationError):
        pipeline.run(profile, is_free_account=True, bundle_id=bundle_id, project_path=wda_project)

    assert xcodebuild.calls == []


def test_account_type_is_required(tmp_path, profile):
    with pytest.raises(ValidationError):
        make_pipeline(tmp_path).run(profile, is_free_account=None)


def test_build_failure_produces_no_archive_and_allows_retry(tmp_path, wda_project, profile):
    failing = FakeXcodebuild(returncode=65, stderr="** BUILD FAILED **")
    pipeline = make_pipeline(tmp_path, failing)

    with pytest.raises(BuildError) as excinfo:
        pipeline.run(profile, is_free_account=False, project_path=wda_project)

    assert "BUILD FAILED" in str(excinfo.value)
    assert not list(wda_project.rglob("*.ipa"))
    assert not pipeline.busy

    pipeline.builder = Builder(runner=FakeXcodebuild())
    result = pipeline.run(profile, is_free_account=False, project_path=wda_project)
    assert result.resigned_ipa_path.exists()


def test_only_one_run_at_a_time(tmp_path, wda_project, profile):
    started = threading.Event()
    release = threading.Event()
    errors = []

    class SlowXcodebuild(FakeXcodebuild):
        def __call__(self, *args, **kwargs):
            started.set()
            release.wait(5)
            return super().__call__(*args, **kwargs)

    pipeline = make_pipeline(tmp_path, SlowXcodebuild())

    def first_run():
        try:
            pipeline.run(profile, is_free_account=False, project_path=wda_project)
        except Exception as e:
            errors.append(e)

    worker = threading.Thread(target=first_run)
    worker.start()
    try:
        assert started.wait(5)
        with pytest.raises(PipelineBusyError):
            pipeline.run(profile, is_free_account=False, project_path=wda_project)
    finally:
        release.set()
        worker.join(5)

    assert errors == []
    assert not pipeline.busy
