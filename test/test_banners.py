from datetime import timedelta

from shopease.models import Banner
from shopease.services.banners_service import normalize_image_url
from shopease.utils.database import utcnow


def test_normalize_image_url():
    assert normalize_image_url("/uploads/banners/a.jpg") == "/uploads/banners/a.jpg"
    assert normalize_image_url("uploads/products/b.png") == "/uploads/products/b.png"
    assert normalize_image_url("https://cdn.example.com/uploads/banners/c.webp?v=2") == "/uploads/banners/c.webp"


def test_create_banner_defaults(client, admin_headers):
    response = client.post("/admin/banners", json={"image_url": "http://localhost/uploads/banners/sale.jpg"},
                           headers=admin_headers)
    assert response.status_code == 201
    banner = response.json()
    assert banner["image_url"] == "/uploads/banners/sale.jpg"
    assert banner["title"].startswith("Banner_")
    assert banner["link_type"] == "none"
    assert banner["link_value"] is None


def test_banner_validation(client, admin_headers):
    bad_image = {"image_url": "https://example.com/random.jpg"}
    assert client.post("/admin/banners", json=bad_image, headers=admin_headers).status_code == 400

    missing_link = {"image_url": "/uploads/banners/a.jpg", "link_type": "product"}
    assert client.post("/admin/banners", json=missing_link, headers=admin_headers).status_code == 400

    bad_type = {"image_url": "/uploads/banners/a.jpg", "link_type": "email"}
    assert client.post("/admin/banners", json=bad_type, headers=admin_headers).status_code == 400


def test_public_banners_respect_window_and_type(client, db):
    now = utcnow()
    db.add_all([
        Banner(title="Home 2", image_url="/uploads/banners/2.jpg", display_order=2),
        Banner(title="Home 1", image_url="/uploads/banners/1.jpg", display_order=1),
        Banner(title="Category", image_url="/uploads/banners/c.jpg", display_on_home=False),
        Banner(title="Inactive", image_url="/uploads/banners/i.jpg", is_active=False),
        Banner(title="Future", image_url="/uploads/banners/f.jpg", start_date=now + timedelta(days=1)),
        Banner(title="Past", image_url="/uploads/banners/p.jpg", end_date=now - timedelta(days=1)),
    ])
    db.commit()

    home = client.get("/banners", params={"type": "home"}).json()
    assert [b["title"] for b in home] == ["Home 1", "Home 2"]

    category = client.get("/banners", params={"type": "category"}).json()
    assert [b["title"] for b in category] == ["Category"]

    assert len(client.get("/banners").json()) == 3
    assert client.get("/banners", params={"type": "popup"}).status_code == 400


def test_update_and_delete_banner(client, db, admin_headers):
    created = client.post("/admin/banners", json={"title": "Sale", "image_url": "/uploads/banners/s.jpg"},
                          headers=admin_headers).json()
    banner_id = created["banner_id"]

    response = client.put(f"/admin/banners/{banner_id}", headers=admin_headers, json={
        "title": "Sale",
        "image_url": "/uploads/banners/s.jpg",
        "link_type": "url",
        "link_value": "https://shop.example.com/sale",
        "display_order": 3,
    })
    assert response.status_code == 200
    assert response.json()["link_value"] == "https://shop.example.com/sale"

    assert client.delete(f"/admin/banners/{banner_id}", headers=admin_headers).status_code == 200
    assert client.get(f"/admin/banners/{banner_id}", headers=admin_headers).status_code == 404
    db.expire_all()
    assert db.query(Banner).count() == 0
