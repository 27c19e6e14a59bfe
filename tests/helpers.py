"""Base test case for the korban tests."""

import unittest
from unittest.mock import MagicMock, patch

from firebase_admin import firestore

from korban import create_app

from .mock_utils import mock_db

ADMIN_ID = "admin-uid"
PARTICIPANT_USER_ID = "participant-uid"


class BaseTestCase(unittest.TestCase):
    """App context plus an in-memory Firestore."""

    def setUp(self):
        self.app = create_app({"TESTING": True, "WTF_CSRF_ENABLED": False})
        self.app_context = self.app.app_context()
        self.app_context.push()
        self.db = mock_db()

    def tearDown(self):
        self.app_context.pop()


class RouteTestCase(BaseTestCase):
    """Test client whose blueprints all see the in-memory Firestore.

    ``route_modules`` lists the modules whose ``firestore`` (and optionally
    ``storage``) name is replaced.
    """

    route_modules = ()
    storage_modules = ()

    def setUp(self):
        super().setUp()
        self.mock_firestore = MagicMock()
        self.mock_firestore.client.return_value = self.db
        self.mock_firestore.FieldFilter = firestore.FieldFilter
        self.mock_firestore.SERVER_TIMESTAMP = firestore.SERVER_TIMESTAMP
        self.mock_storage = MagicMock()

        patchers = [patch("korban.firestore", new=self.mock_firestore)]
        patchers += [
            patch(f"{module}.firestore", new=self.mock_firestore)
            for module in self.route_modules
        ]
        patchers += [
            patch(f"{module}.storage", new=self.mock_storage)
            for module in self.storage_modules
        ]
        for p in patchers:
            p.start()
            self.addCleanup(p.stop)
        self.client = self.app.test_client()

    def login_admin(self):
        self.db.collection("userRoles").document(ADMIN_ID).set(
            {"email": "admin@example.com", "role": "admin"}
        )
        with self.client.session_transaction() as sess:
            sess["user_id"] = ADMIN_ID
            sess["is_admin"] = True

    def login_participant(self, participant_id):
        self.db.collection("userRoles").document(PARTICIPANT_USER_ID).set(
            {
                "email": "peserta@example.com",
                "role": "participant",
                "participantId": participant_id,
            }
        )
        with self.client.session_transaction() as sess:
            sess["user_id"] = PARTICIPANT_USER_ID
            sess["is_admin"] = False
            sess["participant_id"] = participant_id
