# tests/test_donations.py
from datetime import date
from decimal import Decimal

from ellarises.models.participants import Donation, Participant
from ellarises.services import donations as donations_svc

from factories import make_participant, money


def _total(db, participant_id):
    db.expire_all()
    return money(db.get(Participant, participant_id).total_donations)


def test_add_donations_number_and_total(manager_client, db):
    p = make_participant(db)
    for amount in ("100.00", "50.25"):
        r = manager_client.post(
            f"/addDonation/{p.participant_id}",
            data={"donation_amount": amount, "donation_date": "2025-06-01"},
            follow_redirects=False,
        )
        assert r.status_code == 303

    numbers = [d.donation_number for d in donations_svc.donations_for(db, p.participant_id)]
    assert numbers == [1, 2]
    assert _total(db, p.participant_id) == Decimal("150.25")


def test_edit_and_delete_keep_total_in_sync(manager_client, db):
    p = make_participant(db)
    donations_svc.add_donation(db, p.participant_id, Decimal("100"), date(2025, 1, 1))
    donations_svc.add_donation(db, p.participant_id, Decimal("40"), date(2025, 1, 2))

    r = manager_client.post(
        f"/editDonation/{p.participant_id}/1",
        data={"donation_amount": "60.00", "donation_date": "2025-01-01"},
        follow_redirects=False,
    )
    assert r.status_code == 303
    assert _total(db, p.participant_id) == Decimal("100.00")

    manager_client.post(f"/deleteDonation/{p.participant_id}/1")
    assert _total(db, p.participant_id) == Decimal("40.00")

    manager_client.post(f"/deleteDonation/{p.participant_id}/2")
    assert _total(db, p.participant_id) == Decimal("0.00")


def test_delete_does_not_renumber(db):
    p = make_participant(db)
    for n in range(3):
        donations_svc.add_donation(db, p.participant_id, Decimal("10"), date(2025, 1, 1 + n))
    donations_svc.delete_donation(db, p.participant_id, 1)
    donations_svc.add_donation(db, p.participant_id, Decimal("10"), date(2025, 2, 1))
    db.expire_all()
    assert [d.donation_number for d in donations_svc.donations_for(db, p.participant_id)] == [2, 3, 4]


def test_non_positive_amount_rejected(manager_client, db):
    p = make_participant(db)
    r = manager_client.post(
        f"/addDonation/{p.participant_id}",
        data={"donation_amount": "0", "donation_date": "2025-06-01"},
    )
    assert r.status_code == 400
    assert db.query(Donation).count() == 0


def test_recompute_totals_repairs_drift(manager_client, db):
    p = make_participant(db)
    donations_svc.add_donation(db, p.participant_id, Decimal("75"), date(2025, 1, 1))
    other = make_participant(db, email="zero@example.org")

    # simulate edits made outside the app
    db.get(Participant, p.participant_id).total_donations = Decimal("999")
    db.get(Participant, other.participant_id).total_donations = Decimal("12")
    db.commit()

    r = manager_client.post("/recomputeTotals")
    assert r.status_code == 200
    assert "2 participant total(s) were corrected" in r.text
    assert _total(db, p.participant_id) == Decimal("75.00")
    assert _total(db, other.participant_id) == Decimal("0.00")


def test_public_donation_creates_donor(anon_client, db):
    r = anon_client.post(
        "/donate",
        data={
            "first_name": "Rosa",
            "last_name": "Diaz",
            "email": "Rosa.Diaz@example.org",
            "donation_amount": "25.00",
        },
    )
    assert r.status_code == 200
    assert "Thank you" in r.text

    p = db.query(Participant).filter_by(participant_email="rosa.diaz@example.org").one()
    assert p.participant_role == "donor"
    assert _total(db, p.participant_id) == Decimal("25.00")
    d = donations_svc.get_donation(db, p.participant_id, 1)
    assert d.donation_date == date.today()


def test_public_donation_reuses_existing_participant(anon_client, db):
    p = make_participant(db)
    donations_svc.add_donation(db, p.participant_id, Decimal("10"), date(2025, 1, 1))
    anon_client.post(
        "/donate",
        data={
            "first_name": "Maria",
            "last_name": "Lopez",
            "email": "maria.lopez@example.org",
            "donation_amount": "15.50",
            "donation_date": "2025-02-01",
        },
    )
    assert db.query(Participant).count() == 1
    db.expire_all()
    assert [d.donation_number for d in donations_svc.donations_for(db, p.participant_id)] == [1, 2]
    assert _total(db, p.participant_id) == Decimal("25.50")


def test_view_donations_requires_login(anon_client):
    r = anon_client.get("/viewDonations")
    assert r.status_code == 200
    assert "Please log in to access this page" in r.text
