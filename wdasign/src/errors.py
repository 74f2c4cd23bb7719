from typing import Any, Dict, Optional


class WdaSignError(Exception):
    """Base class for every failure a pipeline stage or tool can report."""

    code = "wdasign_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message}


class VersionDetectionError(WdaSignError):
    code = "version_detection_error"


class NotFoundError(WdaSignError):
    code = "not_found"


class EmptyResultError(WdaSignError):
    code = "empty_result"


class ProfileParseError(WdaSignError):
    code = "profile_parse_error"

    def __init__(self, file_path, reason: str):
        super().__init__(f"Failed to parse provisioning profile {file_path}: {reason}")
        self.file_path = file_path


class InvalidProjectPathError(WdaSignError):
    code = "invalid_project_path"


class ProjectNotFoundError(WdaSignError):
    code = "project_not_found"


class BuildError(WdaSignError):
    code = "build_error"


class BuildArtifactMissingError(WdaSignError):
    code = "build_artifact_missing"


class PackagingError(WdaSignError):
    code = "packaging_error"


class SigningError(WdaSignError):
    code = "signing_error"


class ValidationError(WdaSignError):
    code = "validation_error"


class MethodNotFoundError(WdaSignError):
    code = "method_not_found"
    # JSON-RPC "Method not found"
    rpc_code = -32601

    def __init__(self, tool_name: str):
        super().__init__(f"Unknown tool: {tool_name}")
        self.tool_name = tool_name

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["rpcCode"] = self.rpc_code
        return payload


class StageTimeoutError(WdaSignError, TimeoutError):
    code = "timeout"

    def __init__(self, stage: str, timeout: Optional[float]):
        super().__init__(f"{stage} did not finish within {timeout} seconds")
        self.stage = stage
        self.timeout = timeout


class PipelineBusyError(WdaSignError):
    code = "pipeline_busy"
