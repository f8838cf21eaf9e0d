import pytest

from template_market.models.template import PreviewImage, SliderImage, Template
from template_market.models.user import User


@pytest.fixture()
def admin(auth_headers):
    return auth_headers(email="admin@example.com", admin=True)


def test_template_type_crud_requires_admin(client, auth_headers, admin):
    user = auth_headers()

    assert client.post("/template-types", json={"name": "Website"}, headers=user).status_code == 403
    assert client.post("/template-types", json={"name": "Website"}).status_code == 401

    created = client.post("/template-types", json={"name": "Website"}, headers=admin)
    assert created.status_code == 201
    type_id = created.json()["data"]["id"]

    duplicate = client.post("/template-types", json={"name": "website"}, headers=admin)
    assert duplicate.status_code == 400

    renamed = client.put(f"/template-types/{type_id}", json={"name": "Web Site"}, headers=admin)
    assert renamed.json()["data"]["name"] == "Web Site"

    assert client.get(f"/template-types/{type_id}").status_code == 200
    assert client.delete(f"/template-types/{type_id}", headers=admin).status_code == 200
    assert client.get(f"/template-types/{type_id}").status_code == 404


def test_template_types_include_sub_categories_and_templates(client, admin, db_session):
    type_id = client.post("/template-types", json={"name": "Mobile App"}, headers=admin).json()["data"]["id"]
    client.post("/sub-categories", json={"name": "Fitness", "template_type_id": type_id}, headers=admin)
    owner = db_session.query(User).filter(User.email == "admin@example.com").one()
    db_session.add(Template(title="Gym App", user_id=owner.id, template_type_id=type_id, seo_tags=[]))
    db_session.commit()

    listing = client.get("/template-types").json()["data"]

    assert listing[0]["sub_categories"][0]["name"] == "Fitness"
    assert listing[0]["templates"] == [{"id": listing[0]["templates"][0]["id"], "title": "Gym App"}]


def test_sub_categories_by_template_type(client, admin):
    type_id = client.post("/template-types", json={"name": "Dashboard"}, headers=admin).json()["data"]["id"]
    empty = client.get(f"/sub-categories/{type_id}")
    assert empty.status_code == 404

    client.post("/sub-categories", json={"name": "Analytics", "template_type_id": type_id}, headers=admin)
    client.post("/software-types", json={"name": "Figma", "template_type_id": type_id}, headers=admin)

    data = client.get(f"/sub-categories/{type_id}").json()["data"]
    assert [item["name"] for item in data["sub_categories"]] == ["Analytics"]
    assert [item["name"] for item in data["software_categories"]] == ["Figma"]

    software = client.get(f"/software-types/{type_id}").json()["data"]
    assert [item["name"] for item in software] == ["Figma"]


def test_sub_category_rejects_unknown_template_type(client, admin):
    response = client.post("/sub-categories", json={"name": "Orphan", "template_type_id": 999}, headers=admin)

    assert response.status_code == 400


def test_industry_type_crud(client, admin):
    created = client.post("/industry-type", json={"name": "Fintech"}, headers=admin)
    assert created.status_code == 201
    industry_id = created.json()["data"]["id"]

    assert client.post("/industry-type", json={"name": "Fintech"}, headers=admin).status_code == 400
    assert client.put(f"/industry-type/{industry_id}", json={"name": "Finance"}, headers=admin).status_code == 200
    assert [item["name"] for item in client.get("/industry-type").json()["data"]] == ["Finance"]
    assert client.delete(f"/industry-type/{industry_id}", headers=admin).status_code == 200
    assert client.get(f"/industry-type/{industry_id}").status_code == 404


def _owned_template(db_session, email: str) -> Template:
    owner = db_session.query(User).filter(User.email == email).one()
    template = Template(title="Portfolio", user_id=owner.id, seo_tags=["portfolio"])
    template.slider_images = [SliderImage(image_url="https://cdn.example.com/slider.png")]
    template.preview_images = [PreviewImage(image_url="https://cdn.example.com/preview.png")]
    db_session.add(template)
    db_session.commit()
    return template


def test_credit_crud_for_template_owner(client, auth_headers, db_session):
    owner = auth_headers()
    template = _owned_template(db_session, "alice@example.com")
    stranger = auth_headers(email="bob@example.com")

    forbidden = client.post("/credits", json={"template_id": template.id, "fonts": ["Inter"]}, headers=stranger)
    assert forbidden.status_code == 403

    created = client.post("/credits", json={"template_id": template.id, "fonts": ["Inter"]}, headers=owner)
    assert created.status_code == 201
    credit_id = created.json()["data"]["id"]

    updated = client.put(f"/credits/{credit_id}", json={"icons": ["Lucide"]}, headers=owner)
    assert updated.json()["data"]["fonts"] == ["Inter"]
    assert updated.json()["data"]["icons"] == ["Lucide"]

    assert client.get(f"/credits/{template.id}").status_code == 401
    assert len(client.get(f"/credits/{template.id}", headers=stranger).json()["data"]) == 1
    assert client.delete(f"/credits/{credit_id}", headers=owner).status_code == 200
    assert client.get(f"/credits/{template.id}", headers=owner).json()["data"] == []


def test_media_delete_removes_image_and_file(client, auth_headers, storage, db_session):
    owner = auth_headers()
    template = _owned_template(db_session, "alice@example.com")
    slider_id = template.slider_images[0].id
    preview_id = template.preview_images[0].id
    stranger = auth_headers(email="bob@example.com")

    assert client.delete(f"/media/slider-images/{slider_id}", headers=stranger).status_code == 403
    assert client.delete(f"/media/slider-images/{slider_id}", headers=owner).status_code == 200
    assert client.delete(f"/media/preview-images/{preview_id}", headers=owner).status_code == 200
    assert client.delete("/media/preview-mobile-images/12345", headers=owner).status_code == 404

    assert storage.deleted == ["https://cdn.example.com/slider.png", "https://cdn.example.com/preview.png"]
    db_session.expire_all()
    assert db_session.query(SliderImage).count() == 0
