# google_client.py
import os
from typing import Optional

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

from config import AppConfig, load_config

# uploads only touch files this app created
SCOPES = ["https://www.googleapis.com/auth/drive.file"]


def get_credentials(config: AppConfig) -> Credentials:
    creds = None

    if os.path.exists(config.google_token_file):
        creds = Credentials.from_authorized_user_file(config.google_token_file, SCOPES)

    if creds and creds.valid:
        return creds

    if creds and creds.expired and creds.refresh_token:
        creds.refresh(Request())
    else:
        if not config.google_credentials_json:
            raise RuntimeError("GOOGLE_CREDENTIALS_JSON is not set in the environment")

        flow = InstalledAppFlow.from_client_secrets_file(config.google_credentials_json, SCOPES)
        creds = flow.run_local_server(port=0)

    with open(config.google_token_file, "w") as token:
        token.write(creds.to_json())

    return creds


def get_drive_service(config: Optional[AppConfig] = None):
    config = config or load_config()
    return build("drive", "v3", credentials=get_credentials(config))
