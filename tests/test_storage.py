"""Tests for the in-memory clinic store."""

import threading

import pytest
from pydantic import ValidationError

from clinic_scheduler.schemas.booking_schema import Reservation
from clinic_scheduler.storage import ClinicStore
from tests.conftest import at


@pytest.fixture
def empty_store():
    return ClinicStore()


class TestDoctors:
    def test_add_doctor_with_defaults(self, empty_store):
        doctor = empty_store.add_doctor("Sato", honorific="Dr.")
        assert doctor.id.startswith("DOC-")
        assert doctor.display_name == "Dr. Sato"
        assert (doctor.min_duration_minutes, doctor.default_duration_minutes, doctor.max_duration_minutes) == (15, 30, 60)

    def test_invalid_duration_bounds(self, empty_store):
        with pytest.raises(ValidationError, match="min <= default <= max"):
            empty_store.add_doctor("Sato", min_duration_minutes=30, default_duration_minutes=15)

    def test_update_revalidates(self, empty_store):
        empty_store.add_doctor("Sato", doctor_id="DOC-1")
        with pytest.raises(ValidationError):
            empty_store.update_doctor("DOC-1", max_duration_minutes=10)
        assert empty_store.get_doctor("DOC-1").max_duration_minutes == 60

    def test_update_keeps_id(self, empty_store):
        empty_store.add_doctor("Sato", doctor_id="DOC-1")
        updated = empty_store.update_doctor("DOC-1", id="DOC-2", name="Sato Jr.")
        assert updated.id == "DOC-1"
        assert updated.name == "Sato Jr."

    def test_update_unknown(self, empty_store):
        assert empty_store.update_doctor("DOC-X", name="x") is None

    def test_list_and_remove(self, empty_store):
        empty_store.add_doctor("Sato", doctor_id="DOC-1")
        empty_store.add_doctor("Ito", doctor_id="DOC-2")
        assert [d.name for d in empty_store.list_doctors()] == ["Ito", "Sato"]
        assert empty_store.remove_doctor("DOC-1") is True
        assert empty_store.remove_doctor("DOC-1") is False

    def test_nurse_lookup(self, empty_store):
        nurse = empty_store.add_nurse("Kobayashi")
        assert empty_store.get_nurse(nurse.id) == nurse
        assert empty_store.get_nurse(None) is None


class TestReservations:
    def _reservation(self, rid, start, end, doctor_id="DOC-A"):
        return Reservation(id=rid, doctor_id=doctor_id, employee_id="emp-0001", start=start, end=end)

    def test_listing_sorted_by_start(self, empty_store):
        empty_store.save_reservation(self._reservation("R2", at(10), at(11)))
        empty_store.save_reservation(self._reservation("R1", at(9), at(10)))
        assert [r.id for r in empty_store.list_reservations()] == ["R1", "R2"]

    def test_between_uses_start(self, empty_store):
        empty_store.save_reservation(self._reservation("R1", at(8), at(10)))
        empty_store.save_reservation(self._reservation("R2", at(9), at(10)))
        assert [r.id for r in empty_store.reservations_between(at(9), at(12))] == ["R2"]

    def test_overlapping_is_half_open(self, empty_store):
        empty_store.save_reservation(self._reservation("R1", at(8), at(9)))
        empty_store.save_reservation(self._reservation("R2", at(9), at(10)))
        assert [r.id for r in empty_store.reservations_overlapping(at(9), at(9, 30))] == ["R2"]

    def test_for_doctor(self, empty_store):
        empty_store.save_reservation(self._reservation("R1", at(8), at(9), doctor_id="DOC-A"))
        empty_store.save_reservation(self._reservation("R2", at(8), at(9), doctor_id="DOC-B"))
        assert [r.id for r in empty_store.reservations_for_doctor("DOC-B")] == ["R2"]

    def test_reservation_rejects_reversed_range(self):
        with pytest.raises(ValidationError):
            self._reservation("R1", at(10), at(9))


class TestPoliciesAndTemplates:
    def test_policy_bounds(self, empty_store):
        with pytest.raises(ValidationError):
            empty_store.add_policy(days_before=-1, send_hour=9)
        with pytest.raises(ValidationError):
            empty_store.add_policy(days_before=1, send_hour=24)

    def test_active_filter(self, empty_store):
        first = empty_store.add_policy(days_before=1, send_hour=9)
        empty_store.add_policy(days_before=3, send_hour=9)
        empty_store.set_policy_active(first.id, False)
        assert [p.days_before for p in empty_store.list_policies(active_only=True)] == [3]
        assert len(empty_store.list_policies()) == 2

    def test_template_crud(self, empty_store):
        template = empty_store.add_template("Reminder", "Subject", "Body")
        updated = empty_store.update_template(template.id, subject="New subject", body="")
        assert updated.subject == "New subject"
        assert updated.body == "Body"
        assert empty_store.find_template("Reminder") == updated
        assert empty_store.remove_template(template.id) is True
        assert empty_store.find_template("Reminder") is None

    def test_find_template_returns_first(self, empty_store):
        first = empty_store.add_template("Reminder", "One", "Body")
        empty_store.add_template("Reminder", "Two", "Body")
        assert empty_store.find_template("Reminder") == first


class TestSendLedger:
    def test_claim_complete(self, empty_store):
        assert empty_store.claim_send("R1", 1) is True
        assert empty_store.claim_send("R1", 1) is False
        record = empty_store.complete_send("R1", 1)
        assert record.dedup_key == ("R1", 1)
        assert empty_store.claim_send("R1", 1) is False
        assert empty_store.has_send_record("R1", 1)

    def test_release_allows_retry(self, empty_store):
        empty_store.claim_send("R1", 1)
        empty_store.release_send("R1", 1)
        assert empty_store.claim_send("R1", 1) is True

    def test_complete_requires_claim(self, empty_store):
        with pytest.raises(RuntimeError, match="not claimed"):
            empty_store.complete_send("R1", 1)

    def test_concurrent_claims_single_winner(self, empty_store):
        results = []
        barrier = threading.Barrier(8)

        def claim():
            barrier.wait()
            results.append(empty_store.claim_send("R1", 1))

        threads = [threading.Thread(target=claim) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert results.count(True) == 1
