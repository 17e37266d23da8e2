"""Telegram Publisher for News Signal Bot."""

import json
import re
import time
import urllib.error
import urllib.request

from . import constants
from .config import TelegramConfig
from .logging_config import create_execution_logger

BOLD_PATTERN = re.compile(r"\*\*(\S(?:[^*\n]*?\S)?)\*\*")


class TelegramAPIError(RuntimeError):
    """Raised when the Telegram Bot API rejects or fails a request."""

    def __init__(self, message: str, status_code: int | None = None, description: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.description = description

    @property
    def is_client_error(self) -> bool:
        """4xx other than rate limiting: retrying won't help."""
        return (
            self.status_code is not None
            and 400 <= self.status_code < 500
            and self.status_code != 429
        )


class TelegramPublisher:
    """Handles publishing messages and photos to Telegram chats."""

    def __init__(self, config: TelegramConfig, execution_id: str | None = None):
        """Initialize Telegram publisher with configuration."""
        self.config = config
        self.logger = create_execution_logger("telegram_publisher", execution_id)
        self.base_url = f"{constants.TELEGRAM_API_BASE}/bot{config.bot_token}"

        self.logger.info(
            "TelegramPublisher initialized",
            chat_id=config.admin_chat_id,
            parse_mode=config.parse_mode,
            photo_retry_attempts=config.photo_retry_attempts,
        )

    def send_message(self, chat_id: str, text: str, source_name: str = "") -> None:
        """
        Send a text message to a Telegram chat.

        Args:
            chat_id: Destination chat or channel
            text: Message text (markdown from the LLM is converted to HTML)
            source_name: News source the message belongs to (optional)

        Raises:
            TelegramAPIError: If Telegram did not accept the message
        """
        full_text = self.with_signature(chat_id, source_name, text)
        full_text = truncate(full_text, self.config.max_message_length)

        self._post(
            "sendMessage",
            {
                "chat_id": chat_id,
                "text": format_summary_html(full_text),
                "parse_mode": self.config.parse_mode,
            },
        )
        self.logger.info("Message sent to Telegram successfully", chat_id=chat_id)

    def send_photo(
        self, chat_id: str, photo_url: str, caption: str, source_name: str = ""
    ) -> None:
        """
        Send a photo by URL with a caption, falling back to a text message.

        Retries up to photo_retry_attempts with a fixed delay. A client error
        (4xx other than 429) stops retrying early. When every attempt fails the
        caption is sent as text with the image URL appended.

        Raises:
            TelegramAPIError: If the text fallback fails as well
        """
        full_caption = self.with_signature(chat_id, source_name, caption)
        full_caption = truncate(full_caption, self.config.max_caption_length)

        payload = {
            "chat_id": chat_id,
            "photo": photo_url,
            "caption": format_summary_html(full_caption),
            "parse_mode": self.config.parse_mode,
        }

        attempts = max(1, self.config.photo_retry_attempts)
        last_error: TelegramAPIError | None = None
        for attempt in range(1, attempts + 1):
            try:
                self._post("sendPhoto", payload)
                self.logger.info("Photo sent successfully by URL", chat_id=chat_id)
                return
            except TelegramAPIError as e:
                last_error = e
                self.logger.error(
                    f"Failed to send photo (attempt {attempt}): {e}",
                    chat_id=chat_id,
                    attempt=attempt,
                    status_code=e.status_code,
                )
                if e.is_client_error:
                    break
                if attempt < attempts:
                    time.sleep(self.config.photo_retry_delay)

        self.logger.error(
            "All retries for sending photo failed, falling back to text message",
            chat_id=chat_id,
            error=str(last_error),
        )
        self.send_message(chat_id, f"{caption}\n\n(Image: {photo_url})", source_name)

    def notify_admin(self, text: str) -> bool:
        """Send an operational notification to the admin chat.

        Returns:
            True if delivered, False otherwise (failures are only logged)
        """
        try:
            self.send_message(self.config.admin_chat_id, text)
            return True
        except TelegramAPIError as e:
            self.logger.error(
                f"Failed to notify admin chat: {e}",
                chat_id=self.config.admin_chat_id,
                status_code=e.status_code,
            )
            return False

    def with_signature(self, chat_id: str, source_name: str, text: str) -> str:
        """Append the channel id when posting into one of the source's channels."""
        if source_name and chat_id in self.config.target_channels.get(source_name, []):
            return f"{text}\n\n{chat_id}"
        return text

    def _post(self, method: str, data: dict) -> dict:
        """
        POST a JSON payload to a Bot API method.

        Returns:
            Decoded API response

        Raises:
            TelegramAPIError: On transport errors, non-200 status or ok=false
        """
        req = urllib.request.Request(
            f"{self.base_url}/{method}",
            data=json.dumps(data).encode("utf-8"),
            headers={
                "Content-Type": "application/json",
                "User-Agent": "News-Signal-Bot/1.0",
            },
        )

        try:
            with urllib.request.urlopen(req, timeout=self.config.timeout) as response:
                status = response.status
                body = response.read()
        except urllib.error.HTTPError as e:
            description = _read_error_body(e)
            raise TelegramAPIError(
                f"Telegram API error on {method}: {e.code} {description}".strip(),
                status_code=e.code,
                description=description,
            ) from e
        except urllib.error.URLError as e:
            raise TelegramAPIError(
                f"URL error calling {method}: {e.reason}"
            ) from e
        except OSError as e:
            raise TelegramAPIError(f"Network error calling {method}: {e}") from e

        if status != 200:
            raise TelegramAPIError(
                f"Telegram API returned status {status} on {method}",
                status_code=status,
            )

        try:
            decoded = json.loads(body or b"{}")
        except ValueError:
            decoded = {}

        if decoded.get("ok") is False:
            description = decoded.get("description", "")
            raise TelegramAPIError(
                f"Telegram API refused {method}: {description}",
                status_code=decoded.get("error_code"),
                description=description,
            )
        return decoded


def _read_error_body(error: urllib.error.HTTPError) -> str:
    try:
        raw = error.read()
    except (OSError, ValueError, AttributeError):
        return ""
    if not raw:
        return ""
    try:
        return json.loads(raw).get("description", "")
    except (ValueError, AttributeError):
        return raw.decode("utf-8", errors="replace")


def truncate(text: str, limit: int) -> str:
    """Cut text to `limit` characters, ending with an ellipsis marker."""
    marker = constants.TRUNCATION_MARKER
    if len(text) <= limit:
        return text
    return text[: max(0, limit - len(marker))] + marker


def escape_html(text: str | None) -> str:
    """Escape the characters Telegram's HTML parser treats as markup."""
    if not text:
        return ""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def format_summary_html(text: str | None) -> str:
    """
    Convert LLM markdown into Telegram-safe HTML.

    Triple asterisks are escaped to entities so they never reach the
    markup parser, then **bold** spans become <b> tags.
    """
    text = escape_html(text)
    text = text.replace(constants.TRIPLE_ASTERISK, constants.ESCAPED_TRIPLE_ASTERISK)
    return BOLD_PATTERN.sub(r"<b>\1</b>", text)
