"""
Tests for client galleries: admin management, password access, favorites,
downloads, media uploads and alt-text generation.
"""

import io
import pytest
from datetime import datetime, timedelta
from unittest.mock import MagicMock, patch
from app.models import Gallery, GalleryAccessLog, GalleryFavorite, GalleryImage
from app.models.utils import generate_access_code
from app.routes.galleries import HOMEPAGE_IMAGES
from app.utils.media import media_pipeline

CLOUDINARY_CONFIG = {
    'CLOUDINARY_CLOUD_NAME': 'demo',
    'CLOUDINARY_API_KEY': 'key',
    'CLOUDINARY_API_SECRET': 'secret',
}


@pytest.fixture
def hosted_media(app):
    """Cloudinary credentials present; uploads themselves are patched per test."""
    app.config.update(CLOUDINARY_CONFIG)
    media_pipeline.configure(app)
    return app


class TestAccessCodes:
    def test_access_code_format(self):
        code = generate_access_code('  Jane  Doe ', now_ms=1_700_000_000_000)
        assert code.startswith('jane-doe-')
        assert code == code.lower()


class TestGalleryAdmin:
    """Test admin gallery management"""

    def test_requires_admin(self, client, db_session):
        assert client.get('/api/admin/galleries').status_code == 401

    def test_create_gallery(self, admin_client, db_session):
        response = admin_client.post('/api/admin/galleries', json={
            'client_name': 'Jane Doe', 'client_email': 'jane@example.com',
            'title': 'Doe Wedding', 'password': 'secret123', 'expires_days': 30,
        })
        assert response.status_code == 201
        gallery = response.get_json()['gallery']
        assert gallery['status'] == 'active'
        assert gallery['total_photos'] == 0
        assert gallery['access_code'].startswith('jane-doe-')
        assert gallery['expires_at'] is not None
        assert 'password' not in gallery and 'password_hash' not in gallery

        stored = db_session.get(Gallery, gallery['id'])
        assert stored.password_hash != 'secret123'
        assert stored.check_password('secret123')

    def test_create_requires_fields(self, admin_client, db_session):
        response = admin_client.post('/api/admin/galleries', json={'client_name': 'Jane'})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Missing required fields'

    def test_create_rejects_non_string_fields(self, admin_client, db_session):
        response = admin_client.post('/api/admin/galleries', json={
            'client_name': 12345, 'client_email': 'jane@example.com',
            'title': 'Doe Wedding', 'password': 'secret123',
        })
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Invalid field type: client_name'
        assert Gallery.query.count() == 0

    def test_update_and_delete(self, admin_client, gallery):
        response = admin_client.patch(f'/api/admin/galleries/{gallery.id}',
                                      json={'title': 'Renamed', 'password': 'newpass'})
        assert response.get_json()['gallery']['title'] == 'Renamed'
        assert gallery.check_password('newpass')

        assert admin_client.delete(f'/api/admin/galleries/{gallery.id}').get_json()['success']
        assert admin_client.get(f'/api/admin/galleries/{gallery.id}').status_code == 404

    def test_upload_requires_hosting(self, admin_client, gallery):
        data = {'images': (io.BytesIO(b'fake'), 'a.jpg', 'image/jpeg')}
        response = admin_client.post(f'/api/admin/galleries/{gallery.id}/images', data=data,
                                     content_type='multipart/form-data')
        assert response.status_code == 503

    def test_upload_images(self, hosted_media, admin_client, gallery):
        upload_result = {'public_id': 'galleries/1/abc', 'secure_url': 'https://res.cloudinary.com/demo/abc.jpg',
                         'bytes': 1234, 'width': 800, 'height': 600, 'format': 'jpg'}
        with patch('app.utils.media.cloudinary.uploader.upload', return_value=upload_result):
            data = {'images': [(io.BytesIO(b'one'), 'one.jpg', 'image/jpeg'),
                               (io.BytesIO(b'two'), 'two.jpg', 'image/jpeg')]}
            response = admin_client.post(f'/api/admin/galleries/{gallery.id}/images', data=data,
                                         content_type='multipart/form-data')

        assert response.status_code == 201
        body = response.get_json()
        assert body['count'] == 2
        assert [image['display_order'] for image in body['images']] == [2, 3]
        assert 'l_text' in body['images'][0]['watermarked_url']
        assert gallery.total_photos == 4

    def test_remote_import_skips_failures(self, hosted_media, admin_client, gallery):
        ok = MagicMock(ok=True, content=b'img', headers={'Content-Type': 'image/jpeg'})
        not_image = MagicMock(ok=True, content=b'<html>', headers={'Content-Type': 'text/html'})
        upload_result = {'public_id': 'p', 'secure_url': 'https://res.cloudinary.com/demo/p.jpg'}

        with patch('app.utils.media.requests.get', side_effect=[ok, not_image]), \
                patch('app.utils.media.cloudinary.uploader.upload', return_value=upload_result):
            response = admin_client.post(f'/api/admin/galleries/{gallery.id}/images/remote',
                                         json={'urls': ['https://x/a.jpg', 'https://x/page']})

        body = response.get_json()
        assert response.status_code == 201
        assert body['count'] == 1
        assert body['skipped'][0]['url'] == 'https://x/page'

    def test_delete_image_floors_total(self, admin_client, gallery, db_session):
        image = gallery.images[0]
        gallery.total_photos = 0
        db_session.commit()
        response = admin_client.delete(f'/api/admin/galleries/{gallery.id}/images/{image.id}')
        assert response.get_json()['success'] is True
        assert gallery.total_photos == 0

    def test_bulk_update(self, admin_client, gallery):
        image = gallery.images[0]
        assert admin_client.patch('/api/admin/gallery-images/bulk', json={'updates': []}).status_code == 400

        response = admin_client.patch('/api/admin/gallery-images/bulk', json={'updates': [
            {'id': image.id, 'alt_text': 'Bride at sunset', 'gallery_id': 999},
            {'id': 424242, 'title': 'missing'},
        ]})
        body = response.get_json()
        assert body['count'] == 1
        assert image.alt_text == 'Bride at sunset'
        assert image.gallery_id == gallery.id

    def test_seed_homepage_is_idempotent(self, admin_client, db_session):
        first = admin_client.post('/api/admin/gallery-images/seed-homepage').get_json()
        assert len(first['inserted']) == len(HOMEPAGE_IMAGES)
        assert first['updated'] == 0

        second = admin_client.post('/api/admin/gallery-images/seed-homepage').get_json()
        assert second['inserted'] == []
        assert second['updated'] == len(HOMEPAGE_IMAGES)
        assert GalleryImage.query.filter_by(category='homepage', featured=True).count() == len(HOMEPAGE_IMAGES)


class TestGalleryAccess:
    """Test password access by clients"""

    def test_correct_password(self, client, gallery):
        response = client.post(f'/api/galleries/{gallery.access_code}/access', json={'password': 'secret123'})
        assert response.status_code == 200
        body = response.get_json()
        assert body['gallery']['title'] == 'Doe Wedding'
        assert 'client_email' not in body['gallery']
        assert [image['display_order'] for image in body['images']] == [0, 1]
        assert gallery.views_count == 1
        assert GalleryAccessLog.query.filter_by(gallery_id=gallery.id, success=True).count() == 1

    def test_wrong_password_logged(self, client, gallery):
        response = client.post(f'/api/galleries/{gallery.access_code}/access', json={'password': 'nope'})
        assert response.status_code == 401
        assert response.get_json()['error'] == 'Invalid password'
        assert gallery.views_count == 0
        assert GalleryAccessLog.query.filter_by(gallery_id=gallery.id, success=False).count() == 1

    def test_password_required(self, client, gallery):
        response = client.post(f'/api/galleries/{gallery.access_code}/access', json={})
        assert response.status_code == 400

    def test_unknown_or_archived_gallery(self, client, gallery, db_session):
        assert client.post('/api/galleries/nope/access', json={'password': 'x'}).status_code == 404
        gallery.status = 'archived'
        db_session.commit()
        response = client.post(f'/api/galleries/{gallery.access_code}/access', json={'password': 'secret123'})
        assert response.status_code == 404

    def test_expired_gallery(self, client, gallery, db_session):
        gallery.expires_at = datetime.utcnow() - timedelta(days=1)
        db_session.commit()
        response = client.post(f'/api/galleries/{gallery.access_code}/access', json={'password': 'secret123'})
        assert response.status_code == 403
        assert response.get_json()['error'] == 'This gallery has expired'


class TestFavoritesAndDownloads:
    def test_favorite_is_idempotent_per_session(self, client, gallery):
        image = gallery.images[0]
        url = f'/api/galleries/{gallery.access_code}/favorites'

        first = client.post(url, json={'image_id': image.id})
        assert first.status_code == 200
        assert 'session_id=' in first.headers.get('Set-Cookie', '')

        client.post(url, json={'image_id': image.id})
        assert image.favorite_count == 1
        assert GalleryFavorite.query.count() == 1
        assert client.get(url).get_json()['favorites'] == [image.id]

    def test_download_watermarked_when_purchase_required(self, client, gallery):
        image = gallery.images[0]
        response = client.post(f'/api/galleries/{gallery.access_code}/downloads', json={'image_id': image.id})
        body = response.get_json()
        assert body['download_type'] == 'watermarked'
        assert body['download_url'] == image.watermarked_url
        assert gallery.downloads_count == 1

    def test_download_full_res(self, client, gallery, db_session):
        gallery.require_purchase = False
        db_session.commit()
        image = gallery.images[1]
        body = client.post(f'/api/galleries/{gallery.access_code}/downloads',
                           json={'image_id': image.id}).get_json()
        assert body['download_type'] == 'full_res'
        assert body['download_url'] == image.image_url

    def test_download_disabled(self, client, gallery, db_session):
        gallery.allow_downloads = False
        db_session.commit()
        response = client.post(f'/api/galleries/{gallery.access_code}/downloads',
                               json={'image_id': gallery.images[0].id})
        assert response.status_code == 403


class TestAltText:
    def test_image_url_required(self, client, db_session):
        response = client.post('/api/gallery/generate-alt-text', json={})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Image URL is required'

    def test_unconfigured_provider(self, client, db_session):
        response = client.post('/api/gallery/generate-alt-text', json={'imageUrl': 'https://img/a.jpg'})
        assert response.status_code == 503

    def test_generates_clean_alt_text(self, app, client, db_session):
        app.config['OPENAI_API_KEY'] = 'sk-test'
        with patch('app.routes.galleries.ai_client.analyze_image',
                   return_value='"Couple dancing under string lights in Pinehurst, TX"') as analyze:
            response = client.post('/api/gallery/generate-alt-text',
                                   json={'imageUrl': 'https://img/a.jpg', 'category': 'wedding'})
        assert response.get_json()['altText'] == 'Couple dancing under string lights in Pinehurst, TX'
        assert analyze.call_args.kwargs['image_url'] == 'https://img/a.jpg'
