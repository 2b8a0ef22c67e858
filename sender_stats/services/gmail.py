"""
Gmail API client for listing and fetching messages.

Wraps google-api-python-client. Every failure surfaces as a ProviderError;
nothing is retried here.
"""

import http.client
import os
from typing import Any

import httplib2
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from sender_stats.config import settings
from sender_stats.core.errors import DataError, ProviderError
from sender_stats.core.logging import get_logger
from sender_stats.core.models import Message, MessagePage, MessageStub

log = get_logger(__name__)

# If modifying these scopes, delete the token file.
SCOPES = ["https://www.googleapis.com/auth/gmail.readonly"]

# Transport-level failures that never reach an HTTP status
_NETWORK_ERRORS = (httplib2.HttpLib2Error, http.client.HTTPException, OSError)


def load_credentials(credentials_file: str, token_file: str) -> Credentials:
    """
    Load OAuth credentials for the installed app.

    The token file stores the user's access and refresh tokens and is created
    automatically when the authorization flow completes for the first time.
    """
    creds = None
    if os.path.exists(token_file):
        creds = Credentials.from_authorized_user_file(token_file, SCOPES)

    # If there are no (valid) credentials available, let the user log in.
    if not creds or not creds.valid:
        if creds and creds.expired and creds.refresh_token:
            creds.refresh(Request())
        else:
            flow = InstalledAppFlow.from_client_secrets_file(credentials_file, SCOPES)
            creds = flow.run_local_server(port=0)

        with open(token_file, "w") as token:
            token.write(creds.to_json())

    return creds


def build_service(
    credentials_file: str | None = None,
    token_file: str | None = None,
):
    """
    Build an authenticated Gmail service handle.

    Args:
        credentials_file: OAuth client secret file. Uses settings if not provided.
        token_file: Token cache file. Uses settings if not provided.
    """
    credentials_file = credentials_file or settings.gmail_credentials_file
    token_file = token_file or settings.gmail_token_file
    try:
        creds = load_credentials(credentials_file, token_file)
        service = build("gmail", "v1", credentials=creds, cache_discovery=False)
    except GoogleAuthError as e:
        raise ProviderError(f"Gmail authentication failed: {e}") from e
    except HttpError as e:
        raise ProviderError(f"Gmail discovery failed: {e}", status=e.resp.status) from e
    except (*_NETWORK_ERRORS, ValueError) as e:
        raise ProviderError(f"Could not build Gmail service: {e}") from e

    log.info("gmail_service_built", credentials_file=credentials_file)
    return service


class GmailClient:
    """Read-only access to one Gmail mailbox.

    The service handle is shared by every call and carries no per-call state.
    """

    def __init__(
        self,
        service=None,
        user_id: str | None = None,
        page_size: int | None = None,
        include_spam_trash: bool | None = None,
        message_format: str | None = None,
    ):
        self._service = service
        self.user_id = user_id or settings.gmail_user_id
        self.page_size = page_size or settings.gmail_page_size
        self.include_spam_trash = (
            settings.gmail_include_spam_trash if include_spam_trash is None else include_spam_trash
        )
        self.message_format = message_format or settings.gmail_message_format

    @property
    def service(self):
        """Service handle, built on first use."""
        if self._service is None:
            self._service = build_service()
        return self._service

    def list_page(self, page_token: str | None = None) -> MessagePage:
        """
        Fetch one page of message stubs.

        Args:
            page_token: Continuation token from the previous page, None for the first

        Returns:
            MessagePage whose next_page_token is None on the last page
        """
        params: dict[str, Any] = {
            "userId": self.user_id,
            "maxResults": self.page_size,
            "includeSpamTrash": self.include_spam_trash,
        }
        if page_token:
            params["pageToken"] = page_token

        response = self._execute(
            self.service.users().messages().list(**params),
            action="list",
        )

        raw_stubs = response.get("messages") or []
        if not isinstance(raw_stubs, list):
            raise ProviderError(f"Malformed message listing: {type(raw_stubs).__name__}")

        return MessagePage(
            stubs=[MessageStub.from_api(raw) for raw in raw_stubs],
            next_page_token=response.get("nextPageToken") or None,
        )

    def get_message(self, message_id: str) -> Message:
        """Fetch a full message by id."""
        response = self._execute(
            self.service.users().messages().get(
                userId=self.user_id,
                id=message_id,
                format=self.message_format,
            ),
            action="get",
            message_id=message_id,
        )
        try:
            return Message.from_api(response)
        except DataError:
            log.error("gmail_malformed_message", message_id=message_id)
            raise

    def _execute(self, request, action: str, **context) -> dict[str, Any]:
        """Run a request and translate client failures into ProviderError."""
        try:
            response = request.execute(num_retries=0)
        except HttpError as e:
            status = e.resp.status
            log.error("gmail_http_error", action=action, status=status, error=str(e), **context)
            raise ProviderError(f"Gmail {action} failed: {e}", status=status) from e
        except GoogleAuthError as e:
            log.error("gmail_auth_error", action=action, error=str(e), **context)
            raise ProviderError(f"Gmail authentication failed during {action}: {e}") from e
        except _NETWORK_ERRORS as e:
            log.error("gmail_network_error", action=action, error=str(e), **context)
            raise ProviderError(f"Gmail {action} network failure: {e}") from e

        if not isinstance(response, dict):
            raise ProviderError(f"Malformed Gmail {action} response: {type(response).__name__}")
        return response
