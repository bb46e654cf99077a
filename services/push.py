"""Optional Firebase Cloud Messaging setup.

Credentials come from FIREBASE_CREDENTIALS_JSON, FIREBASE_CREDENTIALS_BASE64
(production) or FIREBASE_CREDENTIALS_PATH (local development). Without any of
them push delivery is disabled and notifications are only stored.
"""
import base64
import json
import logging
import os

import firebase_admin
from firebase_admin import credentials
from firebase_admin import messaging as fcm_messaging

logger = logging.getLogger(__name__)

_messaging = None


def _load_credentials():
    cred_json = os.getenv("FIREBASE_CREDENTIALS_JSON")
    cred_base64 = os.getenv("FIREBASE_CREDENTIALS_BASE64")

    if cred_base64:
        try:
            cred_json = base64.b64decode(cred_base64).decode("utf-8")
        except ValueError as e:
            logger.error("Error decoding base64 Firebase credentials: %s", e)

    if cred_json:
        return credentials.Certificate(json.loads(cred_json))

    cred_path = os.getenv("FIREBASE_CREDENTIALS_PATH")
    if cred_path and os.path.exists(cred_path):
        return credentials.Certificate(cred_path)
    return None


def init_firebase():
    """Initialise the Firebase app once; returns the messaging module or None."""
    global _messaging
    if _messaging is not None:
        return _messaging

    try:
        cred = _load_credentials()
    except (ValueError, OSError) as e:
        logger.error("Invalid Firebase credentials: %s", e)
        return None

    if cred is None:
        logger.info("Firebase credentials not found. Push notifications are disabled.")
        return None

    if not firebase_admin._apps:
        firebase_admin.initialize_app(cred)
    _messaging = fcm_messaging
    logger.info("Firebase Admin SDK initialized successfully")
    return _messaging


def get_messaging():
    return _messaging
