"""Firebase Admin SDK initialisation."""

import logging

import firebase_admin
from firebase_admin import credentials

from photofolio.core.config import PhotofolioConfig
from photofolio.core.errors import StoreError

logger = logging.getLogger(__name__)


def get_firebase_app(cfg: PhotofolioConfig) -> firebase_admin.App:
    """Return the default Firebase app, initialising it on first use.

    Credentials come from the ``firebase_*`` configuration fields.  The
    private key is usually stored in ``.env`` with escaped newlines, so
    ``\\n`` sequences are expanded before the certificate is built.

    Raises:
        StoreError: If the app is not initialised yet and any credential
            field is missing.
    """
    if firebase_admin._apps:
        return firebase_admin.get_app()

    missing = [
        name
        for name in ("firebase_project_id", "firebase_client_email", "firebase_private_key")
        if not getattr(cfg, name)
    ]
    if missing:
        raise StoreError(
            "Missing Firebase Admin credentials: "
            + ", ".join(f"PHOTOFOLIO_{name.upper()}" for name in missing)
        )

    cred = credentials.Certificate(
        {
            "type": "service_account",
            "project_id": cfg.firebase_project_id,
            "client_email": cfg.firebase_client_email,
            "private_key": cfg.firebase_private_key.replace("\\n", "\n"),
            "token_uri": "https://oauth2.googleapis.com/token",
        }
    )
    app = firebase_admin.initialize_app(cred)
    logger.info(f"Firebase initialized for project {cfg.firebase_project_id}")
    return app
