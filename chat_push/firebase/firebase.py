import json
import logging
import os
from typing import Optional

import firebase_admin
import google.cloud.firestore
from firebase_admin import credentials, firestore

from ..config import settings

logger = logging.getLogger(__name__)


class FirebaseApp:
    _instance = None

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super(FirebaseApp, cls).__new__(cls)
            cls._instance.initialized = False
        return cls._instance

    def __init__(self, credentials_path: Optional[str] = None):
        if self.initialized:
            return
        logger.info("FirebaseApp.__init__() called")
        self.credentials_path = credentials_path or settings.firebase_credentials_path
        self.app = None
        self.firestore_db = None
        self.connect()
        self.initialized = True

    def get_app(self) -> firebase_admin.App:
        return self.app

    def get_firestore_db(self) -> google.cloud.firestore.Client:
        return self.firestore_db

    def _credential(self) -> Optional[credentials.Base]:
        """Explicit key file, then FIREBASE_SECRET, then Application Default Credentials."""
        if self.credentials_path:
            if not os.path.exists(self.credentials_path):
                raise ValueError(f"Firebase credentials file not found: {self.credentials_path}")
            logger.info(f"Using service account file {self.credentials_path}")
            return credentials.Certificate(self.credentials_path)

        cert_json = settings.firebase_secret
        if cert_json:
            cert_dict = json.loads(cert_json)
            if isinstance(cert_dict, str):
                cert_dict = json.loads(cert_dict)
            return credentials.Certificate(cert_dict)

        logger.info("No Firebase secret configured, using Application Default Credentials")
        return None

    def connect(self) -> None:
        try:
            # Try to get the existing default app
            self.app = firebase_admin.get_app()
            logger.info("Retrieved existing Firebase app")
        except ValueError:
            options = {"databaseURL": settings.firebase_db_url} if settings.firebase_db_url else None
            self.app = firebase_admin.initialize_app(credential=self._credential(), options=options)
            logger.info(f"Initialized Firebase app: {self.app.name}")
        self.firestore_db = firestore.client(self.app)
