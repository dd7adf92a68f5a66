from datetime import timedelta

import pytest
from sqlalchemy import select

from meetups import models
from meetups.db import SessionLocal
from meetups.repositories import events as event_repo
from meetups.time_utils import utcnow


def member_ids_with_status(client, club_id: int, status: str) -> set[int]:
    resp = client.get(f"/api/clubs/{club_id}/members", params={"status": status})
    assert resp.status_code == 200
    return {m["user_id"] for m in resp.json()}


def test_create_club_puts_every_listed_user_in_as_member(client, make_user, headers_for):
    leader = make_user("leader")
    friend = make_user("friend")

    resp = client.post(
        "/api/clubs",
        json={
            "title": "Board Games",
            "description": "Catan on Fridays",
            "max_people": 5,
            "member_ids": [leader, friend, friend],
        },
        headers=headers_for(leader),
    )
    assert resp.status_code == 200
    club = resp.json()
    assert club["leader_id"] == leader
    assert club["max_people"] == 5
    assert {(m["user_id"], m["status"]) for m in club["members"]} == {
        (leader, "MEMBER"),
        (friend, "MEMBER"),
    }


def test_create_club_rejects_unknown_members_and_missing_leader(client, make_user, headers_for):
    leader = make_user("leader")
    other = make_user("other")

    unknown = client.post(
        "/api/clubs",
        json={"title": "A", "description": "B", "max_people": 5, "member_ids": [leader, 9999]},
        headers=headers_for(leader),
    )
    assert unknown.status_code == 400

    no_leader = client.post(
        "/api/clubs",
        json={"title": "A", "description": "B", "max_people": 5, "member_ids": [other]},
        headers=headers_for(leader),
    )
    assert no_leader.status_code == 400

    too_many = client.post(
        "/api/clubs",
        json={"title": "A", "description": "B", "max_people": 1, "member_ids": [leader, other]},
        headers=headers_for(leader),
    )
    assert too_many.status_code == 400


def test_create_club_requires_bearer_token(client, make_user):
    leader = make_user("leader")
    resp = client.post(
        "/api/clubs",
        json={"title": "A", "description": "B", "max_people": 5, "member_ids": [leader]},
    )
    assert resp.status_code == 401


def test_get_club_and_list(client, make_user, make_club):
    leader = make_user("leader")
    club_id = make_club(leader)

    resp = client.get(f"/api/clubs/{club_id}")
    assert resp.status_code == 200
    assert resp.json()["id"] == club_id

    assert client.get("/api/clubs/424242").status_code == 404
    assert [c["id"] for c in client.get("/api/clubs").json()] == [club_id]


def test_members_by_status_skips_soft_deleted_users(client, make_user, make_club):
    leader = make_user("leader")
    gone = make_user("gone")
    applicant = make_user("applicant")
    club_id = make_club(leader, member_ids=[gone], applicant_ids=[applicant])

    with SessionLocal() as session:
        session.get(models.User, gone).deleted_at = utcnow()
        session.commit()

    assert member_ids_with_status(client, club_id, "MEMBER") == {leader}
    assert member_ids_with_status(client, club_id, "APPLICANT") == {applicant}
    assert client.get("/api/clubs/999/members", params={"status": "MEMBER"}).status_code == 404


def test_capacity_scenario_accept_until_full(client, make_user, headers_for):
    leader = make_user("leader")
    b = make_user("b")
    c = make_user("c")

    club = client.post(
        "/api/clubs",
        json={"title": "Duo", "description": "Two only", "max_people": 2, "member_ids": [leader]},
        headers=headers_for(leader),
    ).json()
    club_id = club["id"]

    assert client.post(f"/api/clubs/{club_id}/join", headers=headers_for(b)).status_code == 204
    assert member_ids_with_status(client, club_id, "APPLICANT") == {b}

    accept = client.patch(
        f"/api/clubs/{club_id}/members/{b}/status",
        json={"decision": "ACCEPT"},
        headers=headers_for(leader),
    )
    assert accept.status_code == 204
    assert member_ids_with_status(client, club_id, "MEMBER") == {leader, b}

    # the club is full now, so c cannot even apply
    assert client.post(f"/api/clubs/{club_id}/join", headers=headers_for(c)).status_code == 409


def test_accept_rejected_with_conflict_when_club_full(client, make_user, make_club, headers_for):
    leader = make_user("leader")
    b = make_user("b")
    c = make_user("c")
    club_id = make_club(leader, max_people=2, applicant_ids=[b, c])

    first = client.patch(
        f"/api/clubs/{club_id}/members/{b}/status",
        json={"decision": "ACCEPT"},
        headers=headers_for(leader),
    )
    assert first.status_code == 204

    second = client.patch(
        f"/api/clubs/{club_id}/members/{c}/status",
        json={"decision": "ACCEPT"},
        headers=headers_for(leader),
    )
    assert second.status_code == 409
    assert member_ids_with_status(client, club_id, "MEMBER") == {leader, b}


def test_handle_applicant_rules(client, make_user, make_club, headers_for):
    leader = make_user("leader")
    member = make_user("member")
    applicant = make_user("applicant")
    club_id = make_club(leader, member_ids=[member], applicant_ids=[applicant])
    url = f"/api/clubs/{club_id}/members/{applicant}/status"

    not_leader = client.patch(url, json={"decision": "ACCEPT"}, headers=headers_for(member))
    assert not_leader.status_code == 400

    not_applicant = client.patch(
        f"/api/clubs/{club_id}/members/{member}/status",
        json={"decision": "REJECT"},
        headers=headers_for(leader),
    )
    assert not_applicant.status_code == 409

    bad_decision = client.patch(url, json={"decision": "MAYBE"}, headers=headers_for(leader))
    assert bad_decision.status_code == 422

    reject = client.patch(url, json={"decision": "REJECT"}, headers=headers_for(leader))
    assert reject.status_code == 204
    assert member_ids_with_status(client, club_id, "REJECTED") == {applicant}


def test_join_club_conflicts(client, make_user, make_club, headers_for):
    leader = make_user("leader")
    member = make_user("member")
    newcomer = make_user("newcomer")
    club_id = make_club(leader, member_ids=[member])

    assert client.post(f"/api/clubs/{club_id}/join", headers=headers_for(member)).status_code == 409
    assert client.post(f"/api/clubs/{club_id}/join", headers=headers_for(newcomer)).status_code == 204
    assert client.post(f"/api/clubs/{club_id}/join", headers=headers_for(newcomer)).status_code == 409
    assert client.post("/api/clubs/777/join", headers=headers_for(newcomer)).status_code == 404


def test_rejected_applicant_can_apply_again(client, make_user, make_club, headers_for):
    leader = make_user("leader")
    applicant = make_user("applicant")
    club_id = make_club(leader, applicant_ids=[applicant])

    client.patch(
        f"/api/clubs/{club_id}/members/{applicant}/status",
        json={"decision": "REJECT"},
        headers=headers_for(leader),
    )
    assert client.post(f"/api/clubs/{club_id}/join", headers=headers_for(applicant)).status_code == 204
    assert member_ids_with_status(client, club_id, "APPLICANT") == {applicant}


def test_update_club(client, make_user, make_club, headers_for):
    leader = make_user("leader")
    member = make_user("member")
    outsider = make_user("outsider")
    club_id = make_club(leader, member_ids=[member], max_people=5)
    url = f"/api/clubs/{club_id}"

    assert client.patch(url, json={"title": "X"}, headers=headers_for(member)).status_code == 409
    assert client.patch(url, json={"title": None}, headers=headers_for(leader)).status_code == 400
    assert client.patch(url, json={"max_people": None}, headers=headers_for(leader)).status_code == 400
    assert client.patch(url, json={"leader_id": outsider}, headers=headers_for(leader)).status_code == 400
    assert client.patch(url, json={"leader_id": 5555}, headers=headers_for(leader)).status_code == 400
    assert client.patch(url, json={"max_people": 1}, headers=headers_for(leader)).status_code == 409

    resp = client.patch(
        url,
        json={"title": "Night Hikers", "leader_id": member, "max_people": 2},
        headers=headers_for(leader),
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["title"] == "Night Hikers"
    assert body["description"] == "Weekend trails"
    assert body["leader_id"] == member
    assert body["max_people"] == 2


def test_leader_cannot_leave_and_non_member_cannot_leave(client, make_user, make_club, headers_for):
    leader = make_user("leader")
    applicant = make_user("applicant")
    club_id = make_club(leader, applicant_ids=[applicant])

    assert client.post(f"/api/clubs/{club_id}/leave", headers=headers_for(leader)).status_code == 409
    assert client.post(f"/api/clubs/{club_id}/leave", headers=headers_for(applicant)).status_code == 409


def test_leaving_club_drops_future_hosted_events_and_attendance(
    client, make_user, make_club, make_event, headers_for
):
    leader = make_user("leader")
    member = make_user("member")
    club_id = make_club(leader, member_ids=[member])

    hosted_future = make_event(member, club_id=club_id)
    hosted_past = make_event(
        member,
        club_id=club_id,
        start_time=utcnow() - timedelta(days=2),
        end_time=utcnow() - timedelta(days=2) + timedelta(hours=1),
    )
    attending_future = make_event(leader, club_id=club_id, attendee_ids=[member])
    open_event = make_event(leader, attendee_ids=[member])

    assert client.post(f"/api/clubs/{club_id}/leave", headers=headers_for(member)).status_code == 204

    with SessionLocal() as session:
        assert session.get(models.Event, hosted_future) is None
        assert session.get(models.Event, hosted_past) is not None
        assert session.execute(
            select(models.EventCity).where(models.EventCity.event_id == hosted_future)
        ).first() is None
        joined = set(
            session.execute(
                select(models.EventJoin.event_id).where(models.EventJoin.user_id == member)
            ).scalars()
        )
        assert attending_future not in joined
        assert open_event in joined
        assert session.execute(
            select(models.ClubJoin).where(
                models.ClubJoin.club_id == club_id, models.ClubJoin.user_id == member
            )
        ).first() is None


def test_delete_club_archives_started_events_and_removes_future_ones(
    client, make_user, make_club, make_event, headers_for
):
    leader = make_user("leader")
    member = make_user("member")
    club_id = make_club(leader, member_ids=[member])

    future_event = make_event(leader, club_id=club_id, attendee_ids=[member])
    started_at = utcnow() - timedelta(hours=1)
    started_event = make_event(
        leader,
        club_id=club_id,
        start_time=started_at,
        end_time=started_at + timedelta(hours=3),
        attendee_ids=[member],
    )

    assert client.delete(f"/api/clubs/{club_id}", headers=headers_for(member)).status_code == 409
    assert client.delete(f"/api/clubs/{club_id}", headers=headers_for(leader)).status_code == 204

    with SessionLocal() as session:
        assert session.get(models.Club, club_id) is None
        assert session.get(models.Event, future_event) is None
        assert session.execute(
            select(models.EventJoin).where(models.EventJoin.event_id == future_event)
        ).first() is None
        assert session.execute(
            select(models.EventCity).where(models.EventCity.event_id == future_event)
        ).first() is None
        assert session.execute(
            select(models.ClubJoin).where(models.ClubJoin.club_id == club_id)
        ).first() is None

        archived = session.get(models.Event, started_event)
        assert archived.archived is True
        assert archived.club_id is None

    # the archived record stays readable for the people who attended it
    resp = client.get(f"/api/events/{started_event}", headers=headers_for(member))
    assert resp.status_code == 200
    assert resp.json()["archived"] is True


def test_blank_club_text_is_rejected_on_update(client, make_user, make_club, headers_for):
    leader = make_user("leader")
    club_id = make_club(leader)
    url = f"/api/clubs/{club_id}"
    headers = headers_for(leader)

    assert client.patch(url, json={"title": "   "}, headers=headers).status_code == 422
    assert client.patch(url, json={"description": ""}, headers=headers).status_code == 422
    assert client.patch(url, json={"title": None}, headers=headers).status_code == 400

    resp = client.patch(url, json={"title": "  Trail Runners  "}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["title"] == "Trail Runners"


def test_failed_delete_club_cascade_leaves_everything_in_place(
    client, make_user, make_club, make_event, headers_for, monkeypatch
):
    leader = make_user("leader")
    member = make_user("member")
    club_id = make_club(leader, member_ids=[member])
    future_event = make_event(leader, club_id=club_id, attendee_ids=[member])
    started_at = utcnow() - timedelta(hours=1)
    started_event = make_event(leader, club_id=club_id, start_time=started_at, attendee_ids=[member])

    def fail_archive(db, event_ids):
        raise RuntimeError("archive failed")

    monkeypatch.setattr(event_repo, "archive_events", fail_archive)
    with pytest.raises(RuntimeError):
        client.delete(f"/api/clubs/{club_id}", headers=headers_for(leader))

    with SessionLocal() as session:
        assert session.get(models.Club, club_id) is not None
        assert session.get(models.Event, future_event) is not None
        assert session.execute(
            select(models.EventCity).where(models.EventCity.event_id == future_event)
        ).first() is not None
        attendees = set(
            session.execute(
                select(models.EventJoin.user_id).where(models.EventJoin.event_id == future_event)
            ).scalars()
        )
        assert attendees == {leader, member}
        members = set(
            session.execute(
                select(models.ClubJoin.user_id).where(models.ClubJoin.club_id == club_id)
            ).scalars()
        )
        assert members == {leader, member}
        started = session.get(models.Event, started_event)
        assert started.archived is False
        assert started.club_id == club_id


def test_failed_leave_club_cascade_leaves_everything_in_place(
    client, make_user, make_club, make_event, headers_for, monkeypatch
):
    leader = make_user("leader")
    member = make_user("member")
    club_id = make_club(leader, member_ids=[member])
    hosted_future = make_event(member, club_id=club_id)
    attending_future = make_event(leader, club_id=club_id, attendee_ids=[member])

    def fail_remove(db, event_ids, user_id):
        raise RuntimeError("remove failed")

    monkeypatch.setattr(event_repo, "remove_attendee_from_events", fail_remove)
    with pytest.raises(RuntimeError):
        client.post(f"/api/clubs/{club_id}/leave", headers=headers_for(member))

    with SessionLocal() as session:
        assert session.get(models.Event, hosted_future) is not None
        assert session.execute(
            select(models.EventCity).where(models.EventCity.event_id == hosted_future)
        ).first() is not None
        joined = set(
            session.execute(
                select(models.EventJoin.event_id).where(models.EventJoin.user_id == member)
            ).scalars()
        )
        assert joined == {hosted_future, attending_future}
        assert session.execute(
            select(models.ClubJoin).where(
                models.ClubJoin.club_id == club_id, models.ClubJoin.user_id == member
            )
        ).first() is not None
