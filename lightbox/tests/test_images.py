from lightbox.models.image import Image
from lightbox.services.gallery_ordering import GalleryOrderingEngine
from lightbox.tests.helpers import make_image_bytes, positions, seed_gallery, seed_images


def _upload(client, headers, data=None, filename="beach.png", content_type="image/png", **form):
    if data is None:
        data = make_image_bytes()
    return client.post(
        "/images/",
        files={"image": (filename, data, content_type)},
        data=form,
        headers=headers,
    )


def test_upload_image(client, auth_headers, storage, user):
    r = _upload(client, auth_headers, title="Beach", alt_text="Waves at dusk")
    assert r.status_code == 201, r.text
    data = r.json()
    image_id = data["id"]
    assert data["ok"] is True
    assert data["path"] == f"/uploads/original/{image_id}.png"
    assert (data["width"], data["height"]) == (120, 60)
    assert data["mime_type"] == "image/png"
    assert data["thumbnails"] == {
        "small": f"/uploads/thumbnails-200/{image_id}.png",
        "medium": f"/uploads/thumbnails-500/{image_id}.png",
        "large": f"/uploads/thumbnails-1000/{image_id}.png",
    }
    assert data["duplicate_of"] == []
    assert storage.exists(f"original/{image_id}.png")
    assert storage.exists(f"thumbnails-500/{image_id}.png")

    got = client.get(f"/images/{image_id}")
    assert got.status_code == 200
    body = got.json()
    assert body["title"] == "Beach"
    assert body["alt_text"] == "Waves at dusk"
    assert body["uploaded_by"] == user.id
    assert body["urls"]["original"] == data["path"]
    assert body["thumbnails"]["large"] == data["thumbnails"]["large"]


def test_upload_undecodable_image_is_still_stored(client, auth_headers, storage):
    r = _upload(client, auth_headers, data=b"\x00\x01garbage", filename="broken.jpg",
                content_type="image/jpeg")
    assert r.status_code == 201, r.text
    data = r.json()
    assert data["width"] is None and data["height"] is None
    assert data["thumbnails"] == {}
    assert storage.exists(f"original/{data['id']}.jpg")

    body = client.get(f"/images/{data['id']}").json()
    assert body["urls"]["thumbnail200"] is None
    assert body["thumbnails"]["small"] is None


def test_upload_duplicate_content_reports_earlier_image(client, auth_headers):
    data = make_image_bytes(color=(0, 0, 255))
    first = _upload(client, auth_headers, data=data).json()
    second = _upload(client, auth_headers, data=data).json()

    assert second["sha256"] == first["sha256"]
    assert second["duplicate_of"] == [first["id"]]


def test_upload_rejects_non_image(client, auth_headers, db_session):
    r = _upload(client, auth_headers, data=b"hello", filename="notes.txt",
                content_type="text/plain")
    assert r.status_code == 400
    assert db_session.query(Image).count() == 0


def test_upload_requires_auth(client):
    r = _upload(client, {})
    assert r.status_code == 401


def test_list_images(client, auth_headers):
    first = _upload(client, auth_headers, title="First").json()["id"]
    second = _upload(client, auth_headers, title="Second").json()["id"]

    r = client.get("/images/")
    assert r.status_code == 200
    ids = [row["id"] for row in r.json()]
    assert set(ids) == {first, second}


def test_get_missing_image(client):
    r = client.get("/images/does-not-exist")
    assert r.status_code == 404
    assert r.json()["error"] == "not_found"


def test_delete_image_removes_files_and_closes_gallery_gaps(
    client, auth_headers, storage, db_session
):
    uploaded = _upload(client, auth_headers).json()
    image_id = uploaded["id"]
    gallery_id = seed_gallery(db_session)
    other, = seed_images(db_session, 1)
    GalleryOrderingEngine(db_session).replace_membership(gallery_id, [image_id, other])

    r = client.delete(f"/images/{image_id}", headers=auth_headers)
    assert r.status_code == 204

    assert client.get(f"/images/{image_id}").status_code == 404
    assert not storage.exists(f"original/{image_id}.png")
    assert not storage.exists(f"thumbnails-200/{image_id}.png")
    assert positions(db_session, gallery_id) == [(other, 1)]
