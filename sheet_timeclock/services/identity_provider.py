import logging

import httplib2
import requests
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from google_auth_oauthlib.flow import Flow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from sheet_timeclock.core.config import GoogleConfig
from sheet_timeclock.core.errors import AuthError
from sheet_timeclock.models.common import ProviderProfile

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"

class IdentityProvider:
    """Delegated sign-in: redirect, code exchange, identity verification"""

    def authorization_url(self, state: str) -> str:
        raise NotImplementedError

    def exchange_code(self, code: str) -> str:
        """Trade an authorization code for an access token"""
        raise NotImplementedError

    def verify(self, token: str) -> ProviderProfile:
        raise NotImplementedError

class GoogleIdentityProvider(IdentityProvider):
    """Google OAuth 2.0 web-server flow on google-auth-oauthlib.

    A fresh ``Flow`` is built per step because the redirect and the
    callback arrive as separate requests.
    """

    def __init__(self, client_id=None, client_secret=None, redirect_uri=None, scopes=None,
                 flow_factory=None, userinfo_factory=None):
        self.client_id = client_id or GoogleConfig.CLIENT_ID
        self.client_secret = client_secret or GoogleConfig.CLIENT_SECRET
        self.redirect_uri = redirect_uri or GoogleConfig.REDIRECT_URI
        self.scopes = scopes or GoogleConfig.SCOPES
        self.timeout = GoogleConfig.REQUEST_TIMEOUT_SECONDS
        self.flow_factory = flow_factory or self._make_flow
        self.userinfo_factory = userinfo_factory or self._make_userinfo_service

    def _make_flow(self) -> Flow:
        client_config = {
            "web": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": GOOGLE_AUTH_URI,
                "token_uri": GOOGLE_TOKEN_URI,
                "redirect_uris": [self.redirect_uri],
            }
        }
        # No PKCE verifier: it would have to survive between the two requests
        return Flow.from_client_config(
            client_config,
            scopes=self.scopes,
            redirect_uri=self.redirect_uri,
            autogenerate_code_verifier=False,
        )

    def _make_userinfo_service(self, token: str):
        http = AuthorizedHttp(Credentials(token), http=httplib2.Http(timeout=self.timeout))
        return build("oauth2", "v2", http=http, cache_discovery=False)

    def authorization_url(self, state: str) -> str:
        if not self.client_id:
            raise AuthError("Identity provider login is not configured")
        url, _ = self.flow_factory().authorization_url(
            state=state,
            access_type="online",
            prompt="select_account",
        )
        return url

    def exchange_code(self, code: str) -> str:
        flow = self.flow_factory()
        try:
            flow.fetch_token(code=code)
        except (OAuth2Error, requests.RequestException, ValueError, Warning) as e:
            logger.warning(f"Token exchange with Google failed: {e}")
            raise AuthError("Identity provider sign-in failed") from e
        
        access_token = flow.credentials.token
        if not access_token:
            raise AuthError("Identity provider returned no access token")
        return access_token

    def verify(self, token: str) -> ProviderProfile:
        try:
            info = self.userinfo_factory(token).userinfo().get().execute()
        except HttpError as e:
            logger.warning(f"Google userinfo answered {e.resp.status}")
            raise AuthError("Identity provider rejected the token") from e
        except (httplib2.HttpLib2Error, OSError, ValueError) as e:
            logger.error(f"Google userinfo request failed: {e}")
            raise AuthError("Identity provider sign-in failed") from e
        
        if not info.get("email") or not info.get("verified_email", False):
            raise AuthError("Identity provider did not return a verified email")
        
        return ProviderProfile(email=info["email"], display_name=info.get("name"))
