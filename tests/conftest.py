import plistlib
import subprocess
from pathlib import Path

import pytest
from asn1crypto import cms

from wdasign.src.constants.wda_constants import WDA_APP_NAME, WDA_PROJECT_FILE


def write_mobileprovision(path: Path, uuid: str, name: str, team_name: str) -> Path:
    """Write a CMS-wrapped provisioning profile like the ones Xcode installs"""
    payload = plistlib.dumps(
        {
            "UUID": uuid,
            "Name": name,
            "TeamName": team_name,
            "TeamIdentifier": ["ABCDE12345"],
            "Entitlements": {"get-task-allow": True},
        }
    )
    signed_data = cms.SignedData(
        {
            "version": "v1",
            "digest_algorithms": [],
            "encap_content_info": {"content_type": "data", "content": payload},
            "signer_infos": [],
        }
    )
    content_info = cms.ContentInfo(
        {"content_type": "signed_data", "content": signed_data}
    )
    path.write_bytes(content_info.dump())
    return path


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(
        args=[], returncode=returncode, stdout=stdout, stderr=stderr
    )


def make_app_bundle(app_dir: Path) -> Path:
    """A minimal WebDriverAgentRunner-Runner.app with embedded frameworks"""
    (app_dir / "Frameworks" / "XCTest.framework").mkdir(parents=True)
    (app_dir / "Frameworks" / "XCTest.framework" / "XCTest").write_bytes(b"\xca\xfe")
    (app_dir / "Frameworks" / "libXCTestSwiftSupport.dylib").write_bytes(b"dylib")
    (app_dir / "PlugIns" / "WebDriverAgentRunner.xctest").mkdir(parents=True)
    (app_dir / "PlugIns" / "WebDriverAgentRunner.xctest" / "Info.plist").write_bytes(
        plistlib.dumps({"CFBundleIdentifier": "com.facebook.WebDriverAgentRunner"})
    )
    (app_dir / "Info.plist").write_bytes(
        plistlib.dumps({"CFBundleIdentifier": "com.facebook.WebDriverAgentRunner.xctrunner"})
    )
    (app_dir / "WebDriverAgentRunner-Runner").write_bytes(b"\x00" * 64)
    return app_dir


class FakeXcodebuild:
    """Stands in for xcodebuild: records calls and produces the app bundle"""

    def __init__(self, returncode=0, stderr="", produce_app=True):
        self.returncode = returncode
        self.stderr = stderr
        self.produce_app = produce_app
        self.calls = []

    def __call__(self, cmd, cwd=None, timeout=None, stage="command"):
        self.calls.append({"cmd": cmd, "cwd": cwd, "timeout": timeout})
        if self.returncode == 0 and self.produce_app:
            derived = cmd[cmd.index("-derivedDataPath") + 1]
            app_dir = (
                Path(cwd) / derived / "Build" / "Products" / "Debug-iphoneos" / WDA_APP_NAME
            )
            app_dir.mkdir(parents=True)
            make_app_bundle(app_dir)
        return completed(self.returncode, stderr=self.stderr)


class FakeEngine:
    """Stands in for applesign: emits events and writes the output IPA"""

    def __init__(self, fail=False):
        self.fail = fail
        self.requests = []

    def sign(self, request, options, on_event):
        self.requests.append(request)
        on_event("message", f"Resigning {request.ipa_path}")
        on_event("warning", "Cannot find entitlements, using profile ones")
        if self.fail:
            from wdasign.src.errors import SigningError

            raise SigningError("Error signing WebDriverAgent: identity not found")
        request.output_path.write_bytes(request.ipa_path.read_bytes())


@pytest.fixture
def profiles_dir(tmp_path):
    directory = tmp_path / "Provisioning Profiles"
    directory.mkdir()
    return directory


@pytest.fixture
def wda_project(tmp_path):
    project = tmp_path / "appium-webdriveragent"
    (project / WDA_PROJECT_FILE).mkdir(parents=True)
    return project
