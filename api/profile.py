"""Profile endpoint: view, update and photo replacement for the calling agent."""

from http.server import BaseHTTPRequestHandler

from agent_panel.models.registration import UploadedFile
from agent_panel.services.profile_editor import ProfileEditor
from agent_panel.services.session_context import SessionContext
from agent_panel.utils.errors import AgentPanelError, ValidationError
from agent_panel.utils.http import (
    bearer_token,
    correlation_id_from,
    read_json_body,
    run_async,
    send_error,
    send_json,
)
from agent_panel.utils.logging import correlation_context, get_structured_logger
from agent_panel.utils.logging_config import LoggingConfig

LoggingConfig.setup_logging()
logger = get_structured_logger(__name__)


async def view_profile(session: SessionContext) -> dict:
    record = await session.require_profile()
    return {"profile": ProfileEditor(record, store=session.store).view()}


async def update_profile(session: SessionContext, body: dict) -> dict:
    """Apply the submitted draft in full; a rejected field saves nothing."""
    record = await session.require_profile()
    fields = body.get("fields")
    if not isinstance(fields, dict) or not fields:
        raise ValidationError("Nothing to update")

    editor = ProfileEditor(record, store=session.store)
    editor.begin_edit()
    await editor.update_fields(fields)
    saved = await editor.save()
    session.update_profile(saved)
    return {"profile": editor.view()}


async def replace_photo(session: SessionContext, body: dict) -> dict:
    record = await session.require_profile()
    file = UploadedFile.from_payload(body.get("file"))
    if file is None:
        raise ValidationError("Please select a photo")

    editor = ProfileEditor(record, store=session.store)
    url = await editor.replace_photo(file)
    session.update_profile(editor.record)
    return {"display_picture_url": url, "profile": editor.view()}


ACTIONS = {
    "update": update_profile,
    "photo": replace_photo,
}


async def handle_get(access_token) -> dict:
    return await view_profile(await SessionContext.from_access_token(access_token))


async def handle_post(access_token, body: dict) -> dict:
    action = ACTIONS.get(body.get("action") or "")
    if action is None:
        raise ValidationError("Unknown action")
    return await action(await SessionContext.from_access_token(access_token), body)


class handler(BaseHTTPRequestHandler):
    """Vercel serverless function handler for the agent profile."""

    def do_GET(self):
        with correlation_context(correlation_id_from(self)):
            try:
                send_json(self, 200, run_async(handle_get(bearer_token(self))))
            except AgentPanelError as e:
                send_error(self, e)
            except Exception as e:
                logger.exception("Profile request failed", error=str(e))
                send_error(self, e)

    def do_POST(self):
        with correlation_context(correlation_id_from(self)):
            try:
                body = read_json_body(self)
                send_json(self, 200, run_async(handle_post(bearer_token(self), body)))
            except AgentPanelError as e:
                send_error(self, e)
            except Exception as e:
                logger.exception("Profile update failed", error=str(e))
                send_error(self, e)
