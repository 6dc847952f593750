import io
import uuid
from decimal import Decimal

import pytest

from app.errors import (
    NotFoundError,
    PartialFailureError,
    TransientError,
    UploadError,
    ValidationError,
)
from app.models import ConsumptionEntry, MitigationEntry, MitigationImage
from app.services import activity_service
from app.services.activity_service import ImageUpload, submit_consumption, submit_mitigation
from conftest import STORAGE_BASE_URL, storage_client_error, storage_timeout


def _images(*names):
    return [(io.BytesIO(f"bytes of {name}".encode()), name) for name in names]


@pytest.mark.activity
class TestSubmitMitigation:
    """Client mitigation submissions with evidence images."""

    def test_submit_with_two_images(self, client, client_headers, db_session, portal_client, s3):
        response = client.post(
            '/api/client/activity/mitigation',
            data={"mitigated_plastic_kg": "12.5", "images": _images("bags.jpg", "scale.jpg")},
            content_type='multipart/form-data',
            headers=client_headers(portal_client),
        )

        assert response.status_code == 201, response.data
        entry = response.json['entry']
        assert entry['status'] == 'pending'
        assert entry['mitigated_plastic_kg'] == 12.5
        assert len(entry['images']) == 2

        assert db_session.query(MitigationImage).count() == 2
        assert len(s3.objects) == 2
        for key in s3.objects:
            assert key.startswith(f"{portal_client.id}/")
        for image in entry['images']:
            key = image['image_url'][len(STORAGE_BASE_URL) + 1:]
            assert key in s3.objects

    def test_submit_without_images(self, client_headers, client, portal_client):
        response = client.post(
            '/api/client/activity/mitigation',
            data={"mitigated_plastic_kg": "3"},
            headers=client_headers(portal_client),
        )
        assert response.status_code == 201
        assert response.json['entry']['images'] == []

    @pytest.mark.parametrize("kg", ["0", "-2", "abc", ""])
    def test_invalid_kg_creates_nothing(self, client, client_headers, db_session, portal_client, s3, kg):
        response = client.post(
            '/api/client/activity/mitigation',
            data={"mitigated_plastic_kg": kg, "images": _images("a.jpg")},
            content_type='multipart/form-data',
            headers=client_headers(portal_client),
        )

        assert response.status_code == 400
        assert db_session.query(MitigationEntry).count() == 0
        assert db_session.query(MitigationImage).count() == 0
        assert s3.put_keys == []

    def test_upload_failure_cleans_up(self, db_session, portal_client, s3):
        """Second upload fails: the first is deleted and no entry is written."""
        s3.put_failures[2] = storage_client_error()

        with pytest.raises(UploadError) as excinfo:
            submit_mitigation(
                portal_client.id,
                "5",
                [ImageUpload("a.jpg", b"a", "image/jpeg"), ImageUpload("b.jpg", b"b", "image/jpeg")],
            )

        assert excinfo.value.context['orphaned_paths'] == []
        assert s3.objects == {}
        assert s3.deleted_keys == [s3.put_keys[0]]
        assert db_session.query(MitigationEntry).count() == 0

    def test_upload_failure_via_api(self, client, client_headers, db_session, portal_client, s3):
        s3.put_failures[1] = storage_client_error()
        response = client.post(
            '/api/client/activity/mitigation',
            data={"mitigated_plastic_kg": "1", "images": _images("a.jpg")},
            content_type='multipart/form-data',
            headers=client_headers(portal_client),
        )
        assert response.status_code == 502
        assert response.json['kind'] == 'upload_error'
        assert db_session.query(MitigationEntry).count() == 0

    def test_transient_upload_is_retried_once(self, db_session, portal_client, s3):
        s3.put_failures[1] = storage_timeout()

        entry = submit_mitigation(
            portal_client.id, "2", [ImageUpload("a.jpg", b"a", "image/jpeg")]
        )

        assert len(s3.put_keys) == 2
        assert s3.put_keys[0] == s3.put_keys[1]
        assert len(entry.images) == 1

    def test_repeated_timeout_surfaces_as_transient(self, client, client_headers, db_session, portal_client, s3):
        s3.put_failures[1] = storage_timeout()
        s3.put_failures[2] = storage_timeout()
        response = client.post(
            '/api/client/activity/mitigation',
            data={"mitigated_plastic_kg": "1", "images": _images("a.jpg")},
            content_type='multipart/form-data',
            headers=client_headers(portal_client),
        )
        assert response.status_code == 503
        assert response.json['retryable'] is True
        assert db_session.query(MitigationEntry).count() == 0

    def test_image_rows_failure_keeps_entry(self, db_session, portal_client, s3, monkeypatch):
        real_commit = activity_service.commit

        def flaky_commit(action):
            if action == "recording evidence images":
                raise TransientError("Database unavailable while recording evidence images")
            return real_commit(action)

        monkeypatch.setattr(activity_service, "commit", flaky_commit)

        with pytest.raises(PartialFailureError) as excinfo:
            submit_mitigation(
                portal_client.id, "7", [ImageUpload("a.jpg", b"a", "image/jpeg")]
            )

        entry_id = excinfo.value.context['entry_id']
        assert db_session.get(MitigationEntry, entry_id) is not None
        assert db_session.query(MitigationImage).count() == 0
        assert excinfo.value.context['stored_paths'] == list(s3.objects)

    def test_unknown_client(self, db_session):
        with pytest.raises(NotFoundError):
            submit_mitigation(str(uuid.uuid4()), "1")


@pytest.mark.activity
class TestSubmitConsumption:
    def test_defaults_transaction_date(self, client, client_headers, portal_client):
        response = client.post(
            '/api/client/activity/consumption',
            json={"liters_consumed": 40},
            headers=client_headers(portal_client),
        )
        assert response.status_code == 201
        assert response.json['entry']['liters_consumed'] == 40.0
        assert response.json['entry']['transaction_date'] is not None

    def test_explicit_transaction_date(self, portal_client):
        entry = submit_consumption(portal_client.id, "15.25", "2024-03-01T10:30:00Z")
        assert entry.transaction_date.year == 2024
        assert entry.transaction_date.hour == 10
        assert entry.liters_consumed == Decimal("15.25")

    @pytest.mark.parametrize("liters", [0, -1, "x", None])
    def test_invalid_liters(self, db_session, portal_client, liters):
        with pytest.raises(ValidationError):
            submit_consumption(portal_client.id, liters)
        assert db_session.query(ConsumptionEntry).count() == 0

    def test_invalid_date(self, portal_client):
        with pytest.raises(ValidationError):
            submit_consumption(portal_client.id, 5, "yesterday")

    def test_history(self, client, client_headers, portal_client):
        submit_consumption(portal_client.id, 10, "2024-01-01T00:00:00")
        submit_consumption(portal_client.id, 20, "2024-02-01T00:00:00")

        response = client.get('/api/client/activity/consumption', headers=client_headers(portal_client))
        assert [e['liters_consumed'] for e in response.json['entries']] == [20.0, 10.0]


@pytest.mark.activity
class TestAdminEntryLists:
    def test_mitigation_pagination(self, client, admin_headers, portal_client, make_mitigation_entry):
        for _ in range(17):
            make_mitigation_entry(portal_client)

        response = client.get('/api/admin/mitigation-entries?page=2', headers=admin_headers)

        assert response.status_code == 200
        data = response.json
        assert data['total_count'] == 17
        assert data['total_pages'] == 2
        assert data['per_page'] == 15
        assert len(data['entries']) == 2
        assert data['entries'][0]['client']['email'] == 'maria@example.com'

    def test_mitigation_status_filter(self, client, admin_headers, portal_client, make_mitigation_entry):
        make_mitigation_entry(portal_client, status="pending")
        make_mitigation_entry(portal_client, status="approved")
        make_mitigation_entry(portal_client, status="approved")

        response = client.get('/api/admin/mitigation-entries?status=approved', headers=admin_headers)
        assert response.json['total_count'] == 2
        assert {e['status'] for e in response.json['entries']} == {'approved'}

    def test_unknown_status_filter(self, client, admin_headers):
        response = client.get('/api/admin/mitigation-entries?status=lost', headers=admin_headers)
        assert response.status_code == 400

    def test_consumption_list_and_edit(self, client, admin_headers, portal_client):
        entry = submit_consumption(portal_client.id, 10)

        response = client.get('/api/admin/consumption-entries', headers=admin_headers)
        assert response.json['total_count'] == 1
        assert response.json['entries'][0]['client']['full_name'] == 'Maria Lopez'

        response = client.put(
            f'/api/admin/consumption-entries/{entry.id}',
            json={"liters_consumed": 12.75},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json['entry']['liters_consumed'] == 12.75

    def test_consumption_edit_rejects_zero(self, client, admin_headers, portal_client):
        entry = submit_consumption(portal_client.id, 10)
        response = client.put(
            f'/api/admin/consumption-entries/{entry.id}',
            json={"liters_consumed": 0},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert entry.liters_consumed == Decimal("10")

    def test_consumption_detail_missing(self, client, admin_headers):
        response = client.get(f'/api/admin/consumption-entries/{uuid.uuid4()}', headers=admin_headers)
        assert response.status_code == 404


@pytest.mark.activity
class TestDeleteEvidenceImage:
    def _entry_with_images(self, portal_client):
        return submit_mitigation(
            portal_client.id,
            "3",
            [ImageUpload("a.jpg", b"a", "image/jpeg"), ImageUpload("b.jpg", b"b", "image/jpeg")],
        )

    def test_delete_removes_file_and_row(self, client, admin_headers, db_session, portal_client, s3):
        entry = self._entry_with_images(portal_client)
        image = entry.images[0]
        image_id, path = image.id, image.storage_path

        response = client.delete(f'/api/admin/mitigation-entries/images/{image_id}', headers=admin_headers)

        assert response.status_code == 200
        assert db_session.get(MitigationImage, image_id) is None
        assert path not in s3.objects
        assert len(s3.objects) == 1

    def test_storage_failure_keeps_row(self, client, admin_headers, db_session, portal_client, s3):
        entry = self._entry_with_images(portal_client)
        image = entry.images[0]
        image_id = image.id
        s3.delete_failures[image.storage_path] = [storage_client_error("DeleteObject")]

        response = client.delete(f'/api/admin/mitigation-entries/images/{image_id}', headers=admin_headers)

        assert response.status_code == 502
        assert db_session.get(MitigationImage, image_id) is not None
        assert len(s3.objects) == 2

    def test_missing_image(self, client, admin_headers):
        response = client.delete(f'/api/admin/mitigation-entries/images/{uuid.uuid4()}', headers=admin_headers)
        assert response.status_code == 404
