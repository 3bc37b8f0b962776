"""Gmail API client for RSS Mailer."""

from pathlib import Path

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .composer import build_message, encode_raw
from .config import GmailConfig
from .logging_config import create_execution_logger


class AuthenticationError(Exception):
    """Raised when no authorized Gmail client can be obtained."""


class SendError(Exception):
    """Raised when the Gmail API rejects or fails a send."""


class GmailClient:
    """Authorized Gmail API client able to send messages as the user."""

    def __init__(self, service, execution_id: str | None = None):
        self.service = service
        self.logger = create_execution_logger("gmail", execution_id)

    def send(
        self,
        from_name: str,
        from_address: str,
        to_name: str,
        to_address: str,
        subject: str,
        html_body: str,
    ) -> str | None:
        """Send one HTML message.

        Returns:
            Gmail message ID of the sent message, when reported

        Raises:
            SendError: If composition or the API call fails
        """
        try:
            message = build_message(
                from_name, from_address, to_name, to_address, subject, html_body
            )
            raw = encode_raw(message)
            response = (
                self.service.users()
                .messages()
                .send(userId="me", body={"raw": raw})
                .execute()
            )
        except HttpError as e:
            status = getattr(e.resp, "status", None)
            self.logger.error(
                f"Gmail API error sending to {to_address}: {status}",
                recipient=to_address,
                http_code=status,
            )
            raise SendError(f"Gmail API returned {status}: {e}") from e
        except (OSError, ValueError, GoogleAuthError) as e:
            self.logger.error(
                f"Error sending to {to_address}: {e}", recipient=to_address, error=str(e)
            )
            raise SendError(str(e)) from e

        message_id = (response or {}).get("id")
        self.logger.info(
            "Email sent successfully", recipient=to_address, message_id=message_id
        )
        return message_id


def load_credentials(config: GmailConfig, logger=None) -> Credentials:
    """Load, refresh or interactively obtain OAuth2 user credentials.

    The token file is rewritten only after a refresh or a new authorization.

    Raises:
        AuthenticationError: If no valid credentials can be produced
    """
    token_file = Path(config.token_file)
    credentials_file = Path(config.credentials_file)

    creds = None
    changed = False
    try:
        if token_file.exists():
            creds = Credentials.from_authorized_user_file(str(token_file), config.scopes)

        if creds and creds.expired and creds.refresh_token:
            if logger:
                logger.info("Refreshing expired Gmail token")
            creds.refresh(Request())
            changed = True

        if not creds or not creds.valid:
            if not config.allow_interactive:
                raise AuthenticationError(
                    f"No valid token in {token_file} and interactive "
                    "authorization is disabled"
                )
            if not credentials_file.exists():
                raise AuthenticationError(
                    f"Missing OAuth client file. Expected at {credentials_file}"
                )
            flow = InstalledAppFlow.from_client_secrets_file(
                str(credentials_file), config.scopes
            )
            creds = flow.run_local_server(port=0)
            changed = True

        if changed:
            token_file.parent.mkdir(parents=True, exist_ok=True)
            token_file.write_text(creds.to_json(), encoding="utf-8")
            if logger:
                logger.info(f"Credential file saved to: {token_file}")
    except AuthenticationError:
        raise
    except (GoogleAuthError, OSError, ValueError) as e:
        raise AuthenticationError(f"Gmail authorization failed: {e}") from e

    return creds


def authenticate(config: GmailConfig, execution_id: str | None = None) -> GmailClient:
    """Build an authorized Gmail client.

    Args:
        config: Gmail configuration
        execution_id: Execution ID for logging context

    Returns:
        GmailClient ready to send

    Raises:
        AuthenticationError: If credentials are missing or authorization fails
    """
    logger = create_execution_logger("gmail", execution_id)
    creds = load_credentials(config, logger)

    try:
        service = build("gmail", "v1", credentials=creds, cache_discovery=False)
    except Exception as e:
        logger.error(f"Failed to build Gmail service: {e}", error=str(e))
        raise AuthenticationError(f"Failed to build Gmail service: {e}") from e

    logger.info("Gmail client initialized", application=config.application_name)
    return GmailClient(service, execution_id=execution_id)
