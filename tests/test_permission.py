"""Tests for the notification permission capability."""

from chronozen.medium import PERMISSION_KEY, MemoryMedium
from chronozen.permission import StaticPermission, StoredPermission
from chronozen.schema import PermissionState


class TestStoredPermission:

    def test_unknown_until_answered(self):
        assert StoredPermission(MemoryMedium(), prompt=lambda: True).query() == PermissionState.UNKNOWN

    def test_grant_is_remembered(self):
        medium = MemoryMedium()
        answers = []

        def prompt():
            answers.append(1)
            return True

        assert StoredPermission(medium, prompt=prompt).request() == PermissionState.GRANTED
        assert medium.data[PERMISSION_KEY] == "granted"

        # Next session reads the stored answer without asking
        again = StoredPermission(medium, prompt=prompt)
        assert again.query() == PermissionState.GRANTED
        assert again.request() == PermissionState.GRANTED
        assert len(answers) == 1

    def test_refusal_is_remembered(self):
        medium = MemoryMedium()
        assert StoredPermission(medium, prompt=lambda: False).request() == PermissionState.DENIED
        assert StoredPermission(medium, prompt=lambda: True).request() == PermissionState.DENIED

    def test_no_one_to_ask_is_denied_but_not_stored(self):
        medium = MemoryMedium()
        assert StoredPermission(medium, prompt=lambda: None).request() == PermissionState.DENIED
        assert PERMISSION_KEY not in medium.data

    def test_unreadable_medium_is_unknown(self):
        medium = MemoryMedium()
        medium.fail_reads = True
        assert StoredPermission(medium).query() == PermissionState.UNKNOWN

    def test_store_records_answer_without_prompt(self):
        medium = MemoryMedium()
        permission = StoredPermission(medium, prompt=None)
        assert permission.store(PermissionState.GRANTED)
        assert medium.data[PERMISSION_KEY] == "granted"
        assert permission.request() == PermissionState.GRANTED

    def test_unpersisted_answer_still_applies(self):
        medium = MemoryMedium()
        medium.fail_writes = True
        assert StoredPermission(medium, prompt=lambda: True).request() == PermissionState.GRANTED


class TestStaticPermission:

    def test_fixed_answer(self):
        permission = StaticPermission(PermissionState.DENIED)
        assert permission.query() == PermissionState.DENIED
        assert permission.request() == PermissionState.DENIED
