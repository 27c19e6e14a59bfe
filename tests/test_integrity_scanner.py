"""Tests for the group and participant integrity scan."""

from korban.diagnostics.services import IntegrityScanner

from .helpers import BaseTestCase


class IntegrityScannerTestCase(BaseTestCase):
    def setUp(self):
        super().setUp()
        for group_id in ("g1", "g2", "g3"):
            self.db.collection("groups").document(group_id).set(
                {"name": f"Kumpulan {group_id[1]}"}
            )

    def add_participant(self, participant_id, name, group_id):
        self.db.collection("participants").document(participant_id).set(
            {"name": name, "groupId": group_id}
        )

    def test_orphan_is_the_only_one_reported(self):
        self.add_participant("a", "Ahmad", "g1")
        self.add_participant("b", "Siti", "g2")
        self.add_participant("c", "Ramli", "g3")
        self.add_participant("orphan", "Zainal", "deleted-group")

        result = IntegrityScanner(self.db).scan()

        self.assertEqual([p["id"] for p in result["orphaned"]], ["orphan"])
        self.assertEqual(result["counts_by_group"], {"g1": 1, "g2": 1, "g3": 1})
        self.assertEqual(result["expected"], 21)
        self.assertEqual(result["actual"], 4)
        self.assertEqual(result["discrepancy"], -17)
        self.assertEqual(len(result["groups"]), 3)

    def test_duplicates_grouped_by_name_and_group(self):
        self.add_participant("a1", "Ali", "g1")
        self.add_participant("a2", "Ali", "g1")
        self.add_participant("a3", "Ali", "g2")

        duplicates = IntegrityScanner(self.db).scan()["duplicates"]

        self.assertEqual(len(duplicates), 1)
        self.assertEqual(duplicates[0]["name"], "Ali")
        self.assertEqual(duplicates[0]["groupId"], "g1")
        self.assertEqual(sorted(duplicates[0]["ids"]), ["a1", "a2"])

    def test_capacity_is_configurable(self):
        result = IntegrityScanner(self.db, group_capacity=5).scan()
        self.assertEqual(result["expected"], 15)
        self.assertEqual(result["discrepancy"], -15)

    def test_scan_does_not_write(self):
        self.add_participant("orphan", "Zainal", "deleted-group")
        IntegrityScanner(self.db).scan()
        self.assertTrue(
            self.db.collection("participants").document("orphan").get().exists
        )
        self.assertEqual(self.db.batches, [])

    def test_delete_orphaned(self):
        self.add_participant("a", "Ahmad", "g1")
        self.add_participant("orphan1", "Zainal", "deleted-group")
        self.add_participant("orphan2", "Kamal", "")

        deleted = IntegrityScanner(self.db).delete_orphaned()

        self.assertEqual(deleted, 2)
        remaining = [doc.id for doc in self.db.collection("participants").stream()]
        self.assertEqual(remaining, ["a"])

    def test_connection_check(self):
        self.add_participant("a", "Ahmad", "g1")
        result = IntegrityScanner(self.db).check_connection()
        self.assertEqual(
            result, {"success": True, "groupsCount": 3, "participantsCount": 1}
        )
