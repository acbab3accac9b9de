"""
Conversation orchestrator for the Endpoints bot.

Takes one inbound event at a time (text, command, file upload, button
press) and turns it into exactly one Reply. Conversation state is not
stored as an explicit enum; it follows from what is known about the user:

- NoCredential: no API key in the session. Anything that needs the
  Endpoints API answers with the "API key required" message.
- Credential submission: a text that looks like an API key ("ep_" prefix,
  long enough) is validated and stored. Only accepted in private chats.
- Ready: API key present. Text goes through the message grammar
  (list / scan: / text: / get: / file:).
- AwaitingFileDecision: a table-like upload is parked in the pending file
  store until the user picks "one item per row" or "whole file".

Endpoints API failures never escape: they become success=False results
and a normal reply. Retries are the API client's business, not ours.
"""

from typing import Any, Awaitable, Callable, Optional

from endpoints_bot.config import Settings, get_settings
from endpoints_bot.models import (
    EndpointDataResult,
    EndpointListResult,
    PendingFile,
    ScanResult,
    StatsResult,
)
from endpoints_bot.services.endpoints_api import EndpointsAPIClient
from endpoints_bot.services.pending import PendingFileStore
from endpoints_bot.services.session import SessionStore
from endpoints_bot.utils.parser import is_file_caption, parse_message, parse_path, sanitize
from .events import (
    ButtonPressEvent,
    CommandEvent,
    FileEvent,
    InboundEvent,
    Reply,
    TextEvent,
)
from .formatters import (
    format_api_key_prompt,
    format_api_key_saved,
    format_endpoint_data,
    format_endpoints_list,
    format_file_mode_question,
    format_help,
    format_list_failure,
    format_missing_api_key,
    format_prompt_set,
    format_scan_result,
    format_stats,
    format_unknown_command,
    format_welcome,
)
from .keyboards import (
    FILE_MODE_CANCEL,
    FILE_MODE_ROWS,
    FILE_MODE_WHOLE,
    api_key_saved_keyboard,
    endpoint_detail_keyboard,
    endpoints_list_keyboard,
    error_help_keyboard,
    file_mode_keyboard,
    scan_success_keyboard,
    setup_keyboard,
    welcome_keyboard,
)
from .logging_config import bot_logger as logger

API_KEY_PREFIX = "ep_"
API_KEY_MIN_LENGTH = 20

BusyCallback = Callable[[str], Awaitable[None]]


def looks_like_api_key(text: str) -> bool:
    """Endpoints API keys start with "ep_" and are at least 20 characters."""
    return text.startswith(API_KEY_PREFIX) and len(text) >= API_KEY_MIN_LENGTH


class ConversationOrchestrator:
    """Routes inbound events to replies using session and pending-file state."""

    def __init__(
        self,
        sessions: SessionStore,
        pending_files: PendingFileStore,
        api: EndpointsAPIClient,
        settings: Optional[Settings] = None,
    ):
        self.sessions = sessions
        self.pending_files = pending_files
        self.api = api
        self.settings = settings or get_settings()

    # =========================================================================
    # Entry point
    # =========================================================================

    async def handle(self, event: InboundEvent, on_busy: Optional[BusyCallback] = None) -> Reply:
        """Handle one inbound event. Always returns exactly one reply."""
        try:
            if isinstance(event, TextEvent):
                return await self.handle_text(event, on_busy)
            if isinstance(event, CommandEvent):
                return await self.handle_command(event, on_busy)
            if isinstance(event, FileEvent):
                return await self.handle_file(event, on_busy)
            if isinstance(event, ButtonPressEvent):
                return await self.handle_button(event, on_busy)
            raise TypeError(f"Unsupported event type: {type(event).__name__}")
        except Exception as e:
            logger.error(f"Error handling {type(event).__name__} for user_id={event.user_id}: {e}", exc_info=True)
            return Reply(
                "❌ Error processing message.\nTry again or use /help",
                parse_mode=None,
            )

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    async def _busy(on_busy: Optional[BusyCallback], action: str) -> None:
        """Show a chat action. Indicator failures don't affect the reply."""
        if on_busy is None:
            return
        try:
            await on_busy(action)
        except Exception as e:
            logger.debug(f"Chat action '{action}' failed: {e}")

    @staticmethod
    async def _call(call: Awaitable[Any], failure: Callable[[str], Any]) -> Any:
        """Await an Endpoints API call, turning any exception into a failure result."""
        try:
            return await call
        except Exception as e:
            logger.error(f"Endpoints API call failed: {e}", exc_info=True)
            return failure(str(e) or e.__class__.__name__)

    def _web_url(self, path: str = "") -> str:
        return f"{self.settings.endpoints_web_url.rstrip('/')}{path}"

    @staticmethod
    def _missing_api_key() -> Reply:
        return Reply(format_missing_api_key())

    @staticmethod
    def _scan_reply(result: ScanResult) -> Reply:
        if result.success and result.endpoint:
            keyboard = scan_success_keyboard(result.endpoint.path)
        else:
            keyboard = error_help_keyboard()
        return Reply(format_scan_result(result), keyboard)

    # =========================================================================
    # Text messages
    # =========================================================================

    async def handle_text(self, event: TextEvent, on_busy: Optional[BusyCallback] = None) -> Reply:
        text = event.text.strip()
        logger.info(f"Text from user_id={event.user_id}, text_len={len(text)}")

        # API keys are checked before the grammar so they never reach the parser
        if looks_like_api_key(text):
            return await self.handle_api_key_input(event, text, on_busy)

        parsed = parse_message(text)
        logger.info(f"Message parsed as: {parsed.type}")

        if parsed.type == "list":
            return await self.list_endpoints(event.user_id, on_busy)
        if parsed.type == "scan":
            return await self.scan(event.user_id, parsed.prompt, parsed.content, on_busy)
        if parsed.type == "text":
            return await self.scan_with_last_prompt(event.user_id, parsed.content, on_busy)
        if parsed.type == "get":
            return await self.get_endpoint(event.user_id, parsed.path, on_busy)
        if parsed.type == "file":
            return await self.get_file(event.user_id, parsed.path)

        return Reply(format_unknown_command(), error_help_keyboard())

    async def handle_api_key_input(self, event: TextEvent, api_key: str,
                                   on_busy: Optional[BusyCallback] = None) -> Reply:
        """Validate and store a pasted API key. The key itself is never logged."""
        if not event.is_private:
            logger.warning(f"API key sent in a group chat by user_id={event.user_id}, ignored")
            return Reply(
                "⚠️ Please send your API key in a private message for security.",
                parse_mode=None,
            )

        await self._busy(on_busy, "typing")

        is_valid = await self._call(self.api.validate_api_key(api_key), lambda error: False)
        if not is_valid:
            logger.info(f"Rejected API key for user_id={event.user_id}")
            return Reply(
                "❌ Invalid API key. Please check and try again.\n\n"
                f"Get your key at: {self._web_url('/api-keys')}",
                parse_mode=None,
            )

        await self.sessions.set_api_key(event.user_id, api_key)
        logger.info(f"Linked API key for user_id={event.user_id}")

        return Reply(format_api_key_saved(), api_key_saved_keyboard())

    async def list_endpoints(self, user_id: int, on_busy: Optional[BusyCallback] = None) -> Reply:
        api_key = await self.sessions.get_api_key(user_id)
        if not api_key:
            return self._missing_api_key()

        await self._busy(on_busy, "typing")

        result: EndpointListResult = await self._call(
            self.api.list_endpoints(api_key),
            lambda error: EndpointListResult(success=False, error=error),
        )
        if not result.success:
            return Reply(format_list_failure(result.error), error_help_keyboard())

        keyboard = endpoints_list_keyboard(result.endpoints) if result.endpoints else []
        return Reply(format_endpoints_list(result.endpoints), keyboard)

    async def scan(self, user_id: int, prompt: str, content: Optional[str] = None,
                   on_busy: Optional[BusyCallback] = None) -> Reply:
        """Set the active prompt and, if content was given, scan it right away."""
        api_key = await self.sessions.get_api_key(user_id)
        if not api_key:
            return self._missing_api_key()

        sanitized_prompt = sanitize(prompt)
        if not sanitized_prompt:
            # Nothing left after stripping markup; keep the remembered prompt
            return Reply(format_unknown_command(), error_help_keyboard())
        await self.sessions.set_last_prompt(user_id, sanitized_prompt)

        if not content:
            return Reply(format_prompt_set(sanitized_prompt))

        await self._busy(on_busy, "typing")

        sanitized_content = sanitize(content)
        result: ScanResult = await self._call(
            self.api.scan_text(api_key, sanitized_prompt, sanitized_content),
            lambda error: ScanResult(success=False, error=error),
        )
        return self._scan_reply(result)

    async def scan_with_last_prompt(self, user_id: int, content: str,
                                    on_busy: Optional[BusyCallback] = None) -> Reply:
        session = await self.sessions.get(user_id)
        if not session.api_key:
            return self._missing_api_key()

        if not session.last_prompt:
            return Reply("⚠️ No prompt set. Use `scan: category` first to set a prompt.")

        await self._busy(on_busy, "typing")

        result: ScanResult = await self._call(
            self.api.scan_text(session.api_key, session.last_prompt, sanitize(content)),
            lambda error: ScanResult(success=False, error=error),
        )
        return self._scan_reply(result)

    async def get_endpoint(self, user_id: int, path: str, on_busy: Optional[BusyCallback] = None) -> Reply:
        api_key = await self.sessions.get_api_key(user_id)
        if not api_key:
            return self._missing_api_key()

        path = sanitize(path)
        if parse_path(path) is None:
            return Reply(format_unknown_command(), error_help_keyboard())

        await self._busy(on_busy, "typing")

        result: EndpointDataResult = await self._call(
            self.api.get_endpoint_data(api_key, path),
            lambda error: EndpointDataResult(success=False, error=error),
        )
        keyboard = endpoint_detail_keyboard(path) if result.success else error_help_keyboard()
        return Reply(format_endpoint_data(result), keyboard)

    async def get_file(self, user_id: int, path: str) -> Reply:
        """Single-file download is not offered by the Endpoints API yet."""
        if not await self.sessions.has_api_key(user_id):
            return self._missing_api_key()

        return Reply(
            "📁 File download coming soon!\n\n"
            f"For now, view files at: {self._web_url(sanitize(path))}",
            parse_mode=None,
        )

    async def status(self, user_id: int, on_busy: Optional[BusyCallback] = None) -> Reply:
        api_key = await self.sessions.get_api_key(user_id)
        if not api_key:
            return self._missing_api_key()

        await self._busy(on_busy, "typing")

        result: StatsResult = await self._call(
            self.api.get_usage_stats(api_key),
            lambda error: StatsResult(success=False, error=error),
        )
        return Reply(format_stats(result))

    # =========================================================================
    # Commands
    # =========================================================================

    async def handle_command(self, event: CommandEvent, on_busy: Optional[BusyCallback] = None) -> Reply:
        command = event.command.lower()
        logger.info(f"Command /{command} from user_id={event.user_id}")

        if command == "start":
            return Reply(format_welcome(), welcome_keyboard())
        if command == "help":
            return Reply(format_help())
        if command == "setup":
            return await self.setup(event)
        if command == "list":
            return await self.list_endpoints(event.user_id, on_busy)
        if command == "status":
            return await self.status(event.user_id, on_busy)
        if command == "reset":
            await self.sessions.clear(event.user_id)
            self.pending_files.discard(event.user_id)
            return Reply(
                "✅ Your API key and last prompt were removed.\n"
                "Use /setup to connect again.",
                parse_mode=None,
            )

        return Reply(format_unknown_command(), error_help_keyboard())

    async def setup(self, event: CommandEvent) -> Reply:
        if not event.is_private:
            return Reply(
                "⚠️ Please set up your API key in a private message to me for security.",
                parse_mode=None,
            )

        if await self.sessions.has_api_key(event.user_id):
            return Reply(
                "🔑 You already have an API key configured.\n\n"
                "Send me a new key to update it, or use /status to check your connection."
            )

        return Reply(format_api_key_prompt(), setup_keyboard())

    # =========================================================================
    # File uploads
    # =========================================================================

    async def handle_file(self, event: FileEvent, on_busy: Optional[BusyCallback] = None) -> Reply:
        kind = "photo" if event.is_photo else "file"
        logger.info(
            f"Received {kind} from user_id={event.user_id}, "
            f"mime={event.mime_type}, size={event.file_size}"
        )

        api_key = await self.sessions.get_api_key(event.user_id)
        if not api_key:
            return self._missing_api_key()

        if event.file_size and event.file_size > self.settings.max_file_size:
            limit_mb = self.settings.max_file_size // (1024 * 1024)
            noun = "Image" if event.is_photo else "File"
            return Reply(f"⚠️ {noun} too large. Maximum size is {limit_mb}MB.", parse_mode=None)

        # Caption wins over the remembered prompt and replaces it
        caption = (event.caption or "").strip()
        prompt = sanitize(caption) if caption and is_file_caption(caption) else ""
        if prompt:
            await self.sessions.set_last_prompt(event.user_id, prompt)
        else:
            prompt = await self.sessions.get_last_prompt(event.user_id)

        if not prompt:
            example = "receipts" if event.is_photo else "job tracker"
            return Reply(
                f"⚠️ Please include a caption with your {kind} (e.g., \"{example}\") "
                "or set a prompt first with `scan: category`"
            )

        await self._busy(on_busy, "upload_photo" if event.is_photo else "upload_document")

        try:
            buffer = await event.download()
        except Exception as e:
            logger.error(f"Failed to download {kind} for user_id={event.user_id}: {e}", exc_info=True)
            return Reply(f"❌ Failed to process {kind}: {str(e)[:200]}", parse_mode=None)

        if not event.is_photo and event.mime_type in self.settings.decision_mime_types:
            self.pending_files.put(
                event.user_id,
                PendingFile(
                    buffer=buffer,
                    prompt=prompt,
                    filename=event.filename,
                    mime_type=event.mime_type,
                ),
            )
            logger.info(f"Parked {event.filename} for user_id={event.user_id}, awaiting mode decision")
            return Reply(format_file_mode_question(event.filename, prompt), file_mode_keyboard())

        result: ScanResult = await self._call(
            self.api.scan_file(api_key, prompt, buffer, event.filename, event.mime_type),
            lambda error: ScanResult(success=False, error=error),
        )
        return self._scan_reply(result)

    async def resolve_pending_file(self, user_id: int, split_rows: bool,
                                   on_busy: Optional[BusyCallback] = None) -> Reply:
        """Scan the parked upload with the chosen mode. The pending file is consumed once."""
        api_key = await self.sessions.get_api_key(user_id)
        if not api_key:
            return self._missing_api_key()

        pending = self.pending_files.pop(user_id)
        if pending is None:
            logger.info(f"Pending file missing for user_id={user_id} (expired or already used)")
            return Reply(
                "⌛ This upload has expired. Please send the file again.",
                parse_mode=None,
            )

        await self._busy(on_busy, "upload_document")

        result: ScanResult = await self._call(
            self.api.scan_file(
                api_key,
                pending.prompt,
                pending.buffer,
                pending.filename,
                pending.mime_type,
                {"split_rows": split_rows},
            ),
            lambda error: ScanResult(success=False, error=error),
        )
        return self._scan_reply(result)

    # =========================================================================
    # Inline buttons
    # =========================================================================

    async def handle_button(self, event: ButtonPressEvent, on_busy: Optional[BusyCallback] = None) -> Reply:
        data = event.data or ""
        logger.info(f"Callback from user_id={event.user_id}: {data[:64]}")

        if data == FILE_MODE_ROWS:
            return await self.resolve_pending_file(event.user_id, True, on_busy)
        if data == FILE_MODE_WHOLE:
            return await self.resolve_pending_file(event.user_id, False, on_busy)
        if data in (FILE_MODE_CANCEL, "cancel"):
            self.pending_files.discard(event.user_id)
            return Reply("Cancelled.", parse_mode=None)

        if data == "help":
            return Reply(format_help())
        if data in ("setup", "setup_ready"):
            return Reply(
                "🔑 Please send me your Endpoints API key now.\n\n"
                f"Get one at: {self._web_url('/api-keys')}",
                parse_mode=None,
            )
        if data == "status":
            return await self.status(event.user_id, on_busy)
        if data == "list":
            return await self.list_endpoints(event.user_id, on_busy)
        if data.startswith("get:"):
            return await self.get_endpoint(event.user_id, data[len("get:"):], on_busy)
        if data.startswith("refresh:"):
            return await self.get_endpoint(event.user_id, data[len("refresh:"):], on_busy)
        if data == "web_link":
            return Reply(f"🌐 View all endpoints at: {self._web_url('/dashboard')}", parse_mode=None)

        logger.warning(f"Unknown callback data from user_id={event.user_id}: {data[:64]}")
        return Reply("⚠️ This button is no longer available.", parse_mode=None)


def build_orchestrator(settings: Optional[Settings] = None) -> ConversationOrchestrator:
    """Wire the orchestrator with storage, encryption and API client from settings."""
    from endpoints_bot.services.crypto import CredentialCipher
    from endpoints_bot.services.endpoints_api import get_api_client
    from endpoints_bot.services.storage import create_store

    settings = settings or get_settings()

    secret = settings.encryption_key or settings.telegram_bot_token
    if not secret:
        logger.warning("No ENCRYPTION_KEY or TELEGRAM_BOT_TOKEN set, using development key")
        secret = "default-dev-key"

    return ConversationOrchestrator(
        sessions=SessionStore(create_store(settings), CredentialCipher(secret)),
        pending_files=PendingFileStore(
            ttl_seconds=settings.pending_file_ttl_seconds,
            max_entries=settings.pending_file_max_entries,
        ),
        api=get_api_client(),
        settings=settings,
    )
