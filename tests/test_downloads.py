from datetime import datetime, timedelta

import pytest

from template_market.database import SessionLocal
from template_market.models.download import DownloadHistory
from template_market.models.template import SourceFile, Template
from template_market.models.user import User
from template_market.services.free_download_scheduler import reset_free_downloads, seconds_until_midnight
from template_market.utils.clock import utcnow


@pytest.fixture()
def make_template(db_session, register_user):
    owner_id = register_user(email="owner@example.com", name="Owner")

    def _make(title: str = "Free Kit", is_paid: bool = False, with_source: bool = True, price: float = 0) -> int:
        template = Template(title=title, user_id=owner_id, is_paid=is_paid, price=price, seo_tags=[])
        if with_source:
            template.source_files = [SourceFile(file_url=f"https://cdn.example.com/{title}.zip")]
        db_session.add(template)
        db_session.commit()
        return template.id

    return _make


def _free_downloads(db_session, email: str) -> int:
    db_session.expire_all()
    return db_session.query(User).filter(User.email == email).one().free_downloads


def test_registered_user_spends_allowance(client, auth_headers, make_template, mailer, db_session):
    headers = auth_headers()
    template_id = make_template()

    for expected_left in (2, 1, 0):
        response = client.post(f"/templates/{template_id}/download", json={}, headers=headers)
        assert response.status_code == 200
        assert response.json()["data"]["free_downloads"] == expected_left

    exhausted = client.post(f"/templates/{template_id}/download", json={}, headers=headers)
    assert exhausted.status_code == 403
    assert _free_downloads(db_session, "alice@example.com") == 0

    db_session.expire_all()
    assert db_session.get(Template, template_id).downloads == 3
    assert mailer.links[0]["to"] == "alice@example.com"
    assert mailer.links[0]["url"] == "https://cdn.example.com/Free Kit.zip"


def test_paid_template_requires_purchase(client, auth_headers, make_template, db_session):
    headers = auth_headers()
    template_id = make_template(title="Premium", is_paid=True, price=49)

    response = client.post(f"/templates/{template_id}/download", json={}, headers=headers)

    assert response.status_code == 402
    assert _free_downloads(db_session, "alice@example.com") == 3


def test_template_without_source_file(client, make_template):
    template_id = make_template(with_source=False)

    response = client.post(f"/templates/{template_id}/download", json={"email": "guest@example.com"})

    assert response.status_code == 404


def test_anonymous_download_requires_email(client, make_template):
    template_id = make_template()

    assert client.post(f"/templates/{template_id}/download", json={}).status_code == 400


def test_anonymous_daily_limit(client, make_template, mailer, db_session):
    template_id = make_template()
    body = {"email": "guest@example.com", "name": "Guest"}

    for _ in range(3):
        assert client.post(f"/templates/{template_id}/download", json=body).status_code == 200

    limited = client.post(f"/templates/{template_id}/download", json=body)
    assert limited.status_code == 403

    other_guest = client.post(f"/templates/{template_id}/download", json={"email": "other@example.com"})
    assert other_guest.status_code == 200
    assert db_session.query(DownloadHistory).filter(DownloadHistory.user_id.is_(None)).count() == 4
    assert mailer.links[0]["name"] == "Guest"


def test_failed_link_email_does_not_fail_download(client, make_template, mailer):
    template_id = make_template()
    mailer.fail = True

    response = client.post(f"/templates/{template_id}/download", json={"email": "guest@example.com"})

    assert response.status_code == 200
    assert response.json()["data"]["email_sent"] is False


def test_raising_link_dispatcher_does_not_fail_download(client, make_template, mailer, monkeypatch, db_session):
    def _raise(*args, **kwargs):
        raise RuntimeError("smtp relay unavailable")

    template_id = make_template()
    monkeypatch.setattr(mailer, "send_download_link", _raise)

    response = client.post(f"/templates/{template_id}/download", json={"email": "guest@example.com"})

    assert response.status_code == 200
    assert response.json()["data"]["email_sent"] is False
    assert db_session.query(DownloadHistory).count() == 1


def test_user_download_history_filters(client, auth_headers, make_template, db_session):
    headers = auth_headers()
    free_id = make_template(title="Free Kit")
    premium_id = make_template(title="Premium", is_paid=True, price=20)
    user = db_session.query(User).filter(User.email == "alice@example.com").one()
    now = utcnow()
    db_session.add_all([
        DownloadHistory(user_id=user.id, email=user.email, template_id=free_id, downloaded_at=now),
        DownloadHistory(user_id=user.id, email=user.email, template_id=premium_id, downloaded_at=now - timedelta(days=10)),
        DownloadHistory(user_id=user.id, email=user.email, template_id=free_id, downloaded_at=now - timedelta(days=200)),
    ])
    db_session.commit()

    everything = client.get("/get-user-downloads", headers=headers).json()["data"]
    assert everything["pagination"]["total"] == 3
    assert everything["downloads"][0]["template"]["title"] == "Free Kit"

    last_week = client.get("/get-user-downloads", params={"sort": "Last 7 Day"}, headers=headers).json()["data"]
    assert last_week["pagination"]["total"] == 1

    premium = client.get("/get-user-downloads", params={"category": "Premium"}, headers=headers).json()["data"]
    assert [row["template_id"] for row in premium["downloads"]] == [premium_id]

    free_this_year = client.get(
        "/get-user-downloads",
        params={"category": "Free Download", "sort": "Last Year"},
        headers=headers,
    ).json()["data"]
    assert free_this_year["pagination"]["total"] == 2

    assert client.get("/get-user-downloads", params={"sort": "Yesterday"}, headers=headers).status_code == 400


def test_free_download_endpoint_and_daily_reset(client, auth_headers, make_template, db_session):
    headers = auth_headers()
    template_id = make_template()
    client.post(f"/templates/{template_id}/download", json={}, headers=headers)

    assert client.get("/free-download", headers=headers).json()["data"] == {"free_downloads": 2, "profile_img": None}

    assert reset_free_downloads(SessionLocal, allowance=3) == 1
    assert _free_downloads(db_session, "alice@example.com") == 3


def test_seconds_until_midnight():
    assert seconds_until_midnight(datetime(2024, 5, 1, 23, 59, 0)) == 60
    assert seconds_until_midnight(datetime(2024, 5, 1, 0, 0, 0)) == 24 * 60 * 60
