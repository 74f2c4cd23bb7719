from typing import Any, Dict, Optional

import anyio
from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from wdasign.logger import get_console
from wdasign.src.constants.cli_constants import SERVER_NAME
from wdasign.src.server.session import (
    ACCOUNT_TYPE_TOOL,
    BUILD_AND_SIGN_TOOL,
    LIST_PROFILES_TOOL,
    ToolSession,
)

SERVER_INSTRUCTIONS = (
    "Builds WebDriverAgent and re-signs it for a real iOS device. "
    f"Call '{LIST_PROFILES_TOOL}', let the user pick a profile, confirm the "
    f"account type with '{ACCOUNT_TYPE_TOOL}', then call '{BUILD_AND_SIGN_TOOL}'."
)


async def call_tool(session: ToolSession, name: str, arguments: Dict[str, Any]) -> str:
    """Run a tool in a worker thread, raising ToolError for error results"""
    arguments = {k: v for k, v in arguments.items() if v is not None}
    result = await anyio.to_thread.run_sync(session.dispatch, name, arguments)
    if result.is_error:
        raise ToolError(result.text)
    return result.text


def create_server(session: ToolSession) -> FastMCP:
    mcp = FastMCP(SERVER_NAME, instructions=SERVER_INSTRUCTIONS)

    @mcp.tool(
        name=LIST_PROFILES_TOOL,
        description=(
            "List all provisioning profiles in the system. "
            "Ask user to select from one of the listed profiles. "
            "Don't assume or select any profile without asking the user. "
            f"Use the UUID of the selected profile to check the account type in next tool '{ACCOUNT_TYPE_TOOL}'."
        ),
    )
    async def list_provisioning_profiles(profile_uuid: Optional[str] = None) -> str:
        return await call_tool(
            session, LIST_PROFILES_TOOL, {"profile_uuid": profile_uuid}
        )

    @mcp.tool(
        name=ACCOUNT_TYPE_TOOL,
        description=(
            "Ask user to confirm if the selected provisioning profile is a free account "
            "or an enterprise account. Don't assume the account type based on the UUID "
            "without asking the user."
        ),
    )
    async def is_free_account(is_free_account: bool) -> str:
        return await call_tool(
            session, ACCOUNT_TYPE_TOOL, {"is_free_account": is_free_account}
        )

    @mcp.tool(
        name=BUILD_AND_SIGN_TOOL,
        description=(
            "Build and sign WebDriverAgent for iOS using the selected provisioning profile. "
            "Pass profile_uuid from the listing (or profile_path to a .mobileprovision file) "
            "and is_free_account. Free accounts must pass bundle_id; ask the user for it "
            "instead of assuming one."
        ),
    )
    async def build_and_sign_wda(
        profile_uuid: Optional[str] = None,
        profile_path: Optional[str] = None,
        is_free_account: Optional[bool] = None,
        bundle_id: Optional[str] = None,
        project_path: Optional[str] = None,
        output_path: Optional[str] = None,
    ) -> str:
        return await call_tool(
            session,
            BUILD_AND_SIGN_TOOL,
            {
                "profile_uuid": profile_uuid,
                "profile_path": profile_path,
                "is_free_account": is_free_account,
                "bundle_id": bundle_id,
                "project_path": project_path,
                "output_path": output_path,
            },
        )

    return mcp


def serve(session: ToolSession) -> None:
    """Serve the tools over stdio until the client disconnects"""
    mcp = create_server(session)
    get_console().log("[green]WebDriverAgent MCP server running on stdio[/]")
    mcp.run(transport="stdio")
