"""Integration tests for the upload HTTP endpoints.

Storage is the in-memory fake from conftest, injected through create_app();
the full FastAPI stack (multipart parsing, routing, exception handlers) is real.
"""
PUBLIC_BASE = "https://test-bucket.s3.us-east-1.amazonaws.com"


def upload(client, filename="cube.glb", content=b"glTF-binary", mime="model/gltf-binary"):
    return client.post("/api/upload", files={"model": (filename, content, mime)})


class TestUploadEndpoint:
    def test_upload_returns_url(self, api_client, storage):
        response = upload(api_client)

        assert response.status_code == 200
        assert response.json() == {"url": f"{PUBLIC_BASE}/cube.glb"}
        assert storage.objects["cube.glb"] == b"glTF-binary"
        assert storage.content_types["cube.glb"] == "model/gltf-binary"

    def test_upload_strips_client_directories(self, api_client, storage):
        response = upload(api_client, filename="scenes/cube.glb")

        assert response.status_code == 200
        assert list(storage.objects) == ["cube.glb"]

    def test_missing_file_part(self, api_client, storage):
        response = api_client.post(
            "/api/upload",
            files={"texture": ("cube.glb", b"glTF", "model/gltf-binary")},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "No file uploaded"}
        assert storage.calls == []

    def test_empty_request(self, api_client, storage):
        response = api_client.post("/api/upload")

        assert response.status_code == 400
        assert response.json() == {"error": "No file uploaded"}
        assert storage.calls == []

    def test_part_with_empty_filename(self, api_client, storage):
        response = upload(api_client, filename="")

        assert response.status_code == 400
        assert response.json() == {"error": "No file uploaded"}
        assert storage.calls == []

    def test_text_field_instead_of_file(self, api_client, storage):
        response = api_client.post("/api/upload", data={"model": "not a file"})

        assert response.status_code == 400
        assert response.json() == {"error": "No file uploaded"}
        assert storage.calls == []

    def test_oversize_content_length_refused_before_parsing(self, api_client, storage):
        response = upload(
            api_client, filename="huge.stl", content=b"x" * (1024 + 128 * 1024), mime="model/stl"
        )

        assert response.status_code == 413
        assert response.json() == {"error": "File exceeds the upload size limit of 1024 bytes"}
        assert storage.calls == []

    def test_unsupported_type(self, api_client, storage):
        response = upload(api_client, filename="cat.png", content=b"\x89PNG", mime="image/png")

        assert response.status_code == 400
        assert response.json() == {"error": "Unsupported file type: image/png"}
        assert storage.calls == []

    def test_oversize_upload(self, api_client, storage):
        response = upload(api_client, filename="big.stl", content=b"x" * 2048, mime="model/stl")

        assert response.status_code == 413
        assert "error" in response.json()
        assert storage.calls == []

    def test_storage_failure_is_generic_500(self, api_client, storage):
        storage.fail_on = "put"

        response = upload(api_client)

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to upload file"}
        assert "simulated outage" not in response.text

    def test_wrong_method(self, api_client):
        response = api_client.get("/api/upload")

        assert response.status_code == 405
        assert response.json() == {"error": "Method not allowed"}


class TestListEndpoint:
    def test_empty_listing(self, api_client):
        response = api_client.get("/api/load")

        assert response.status_code == 200
        assert response.json() == []

    def test_models_alias(self, api_client):
        upload(api_client)

        assert api_client.get("/api/models").json() == api_client.get("/api/load").json()

    def test_listing_keeps_storage_order(self, api_client):
        upload(api_client, filename="b.stl", mime="model/stl")
        upload(api_client, filename="a.obj", mime="model/obj")

        names = [f["name"] for f in api_client.get("/api/load").json()]

        assert names == ["b.stl", "a.obj"]

    def test_storage_failure_is_generic_500(self, api_client, storage):
        storage.fail_on = "list"

        response = api_client.get("/api/load")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to list files"}


class TestDeleteEndpoint:
    def test_delete_removes_from_listing(self, api_client):
        upload(api_client)

        response = api_client.delete("/api/uploads/cube.glb")

        assert response.status_code == 200
        assert response.json() == {"message": "File deleted successfully"}
        assert api_client.get("/api/load").json() == []

    def test_delete_unknown_key_succeeds(self, api_client, storage):
        response = api_client.delete("/api/uploads/never-existed.glb")

        assert response.status_code == 200
        assert response.json() == {"message": "File deleted successfully"}
        assert storage.mutations() == [("delete", "never-existed.glb")]

    def test_delete_without_filename(self, api_client, storage):
        response = api_client.delete("/api/uploads")

        assert response.status_code == 400
        assert response.json() == {"error": "Filename is required"}
        assert storage.calls == []

    def test_wrong_method_does_not_mutate(self, api_client, storage):
        upload(api_client)

        for method in ("post", "put", "patch"):
            response = getattr(api_client, method)("/api/uploads/cube.glb")
            assert response.status_code == 405
            assert response.json() == {"error": "Method not allowed"}

        assert storage.mutations() == [("put", "cube.glb")]
        assert "cube.glb" in storage.objects

    def test_storage_failure_is_generic_500(self, api_client, storage):
        storage.fail_on = "delete"

        response = api_client.delete("/api/uploads/cube.glb")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to delete file"}


class TestSignedUrlEndpoint:
    def test_signed_url_without_existence_check(self, api_client, storage):
        response = api_client.get("/api/uploads/not-there.glb")

        assert response.status_code == 200
        body = response.json()
        assert body["expires_in"] == 3600
        assert body["url"].startswith(f"{PUBLIC_BASE}/not-there.glb?")
        assert storage.calls == [("sign", "not-there.glb")]

    def test_signed_url_without_filename(self, api_client):
        response = api_client.get("/api/uploads")

        assert response.status_code == 400
        assert response.json() == {"error": "Filename is required"}

    def test_storage_failure_is_generic_500(self, api_client, storage):
        storage.fail_on = "sign"

        response = api_client.get("/api/uploads/cube.glb")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to generate download URL"}


class TestApplication:
    def test_cube_round_trip(self, api_client):
        created = upload(api_client)
        assert created.status_code == 200
        assert created.json()["url"].endswith("/cube.glb")

        assert api_client.get("/api/load").json() == [
            {"name": "cube.glb", "url": f"{PUBLIC_BASE}/cube.glb"}
        ]

        assert api_client.delete("/api/uploads/cube.glb").status_code == 200
        assert api_client.get("/api/load").json() == []

    def test_health(self, api_client):
        response = api_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "connections": 0}

    def test_unknown_route_uses_error_body(self, api_client):
        response = api_client.get("/api/nope")

        assert response.status_code == 404
        assert "error" in response.json()

    def test_cors_allows_configured_origin(self, api_client):
        response = api_client.get("/api/load", headers={"Origin": "http://localhost:5173"})

        assert response.headers["access-control-allow-origin"] == "http://localhost:5173"
        assert response.headers["access-control-allow-credentials"] == "true"

    def test_cors_ignores_unknown_origin(self, api_client):
        response = api_client.get("/api/load", headers={"Origin": "https://evil.example"})

        assert "access-control-allow-origin" not in response.headers
