"""
Tests for sitemap generation, the sitemap endpoints and on-demand revalidation.
"""

from datetime import datetime, timedelta
from unittest.mock import patch
from app.models import BlogPost, ContentPage
from app.utils.sitemap import (
    SitemapEntry, SitemapImage, blog_change_frequency, blog_priority, build_entries,
    category_slug, escape_xml, render_sitemap
)

NOW = datetime(2025, 6, 30, 12, 0)


class TestAgeHeuristics:
    """Priority and change frequency follow content age"""

    def test_priority_buckets(self):
        assert blog_priority(NOW - timedelta(days=10), None, NOW) == 0.8
        assert blog_priority(NOW - timedelta(days=30), None, NOW) == 0.8
        assert blog_priority(NOW - timedelta(days=60), None, NOW) == 0.7
        assert blog_priority(NOW - timedelta(days=200), None, NOW) == 0.5
        assert blog_priority(None, None, NOW) == 0.5

    def test_change_frequency_buckets(self):
        assert blog_change_frequency(NOW - timedelta(days=5), None, NOW) == 'daily'
        assert blog_change_frequency(NOW - timedelta(days=10), None, NOW) == 'weekly'
        assert blog_change_frequency(NOW - timedelta(days=45), None, NOW) == 'monthly'
        assert blog_change_frequency(None, None, NOW) == 'yearly'

    def test_updated_at_is_the_fallback(self):
        assert blog_priority(None, NOW - timedelta(days=3), NOW) == 0.8
        assert blog_change_frequency(None, NOW - timedelta(days=3), NOW) == 'daily'


class TestRendering:
    def test_escape_xml(self):
        assert escape_xml('a & b <c> "d" \'e\'') == 'a &amp; b &lt;c&gt; &quot;d&quot; &apos;e&apos;'

    def test_category_slug(self):
        assert category_slug('Wedding Tips & Tricks') == 'wedding-tips-tricks'

    def test_image_extension(self):
        entry = SitemapEntry('https://x/blog/a', NOW, 'daily', 0.8,
                             image=SitemapImage('https://img/a.jpg', 'Title & more', None))
        xml = render_sitemap([entry])
        assert 'xmlns:image="http://www.google.com/schemas/sitemap-image/1.1"' in xml
        assert '<image:loc>https://img/a.jpg</image:loc>' in xml
        assert '<image:title>Title &amp; more</image:title>' in xml
        assert '<image:caption>' not in xml
        assert '<lastmod>2025-06-30T12:00:00.000Z</lastmod>' in xml
        assert '<priority>0.8</priority>' in xml

    def test_verification_pages_are_excluded(self):
        pages = [
            ContentPage(slug='pricing', updated_at=NOW),
            ContentPage(slug='google-site-verification'),
            ContentPage(slug='my-verification-page'),
            ContentPage(slug='a' + '0123456789abcdef' * 2),
        ]
        posts = [BlogPost(slug='golden-hour', title='Golden Hour', content='x', category='Portrait Tips',
                          published_at=NOW - timedelta(days=10))]

        locs = {entry.loc: entry for entry in build_entries('https://www.studio37.cc', pages, posts, NOW)}

        assert 'https://www.studio37.cc/pricing' in locs
        assert not any('verification' in loc for loc in locs)
        assert len([loc for loc in locs if loc.startswith('https://www.studio37.cc/a0123')]) == 0
        post = locs['https://www.studio37.cc/blog/golden-hour']
        assert post.priority == 0.8
        assert post.changefreq == 'weekly'
        assert locs['https://www.studio37.cc/blog/category/portrait-tips'].priority == 0.6
        assert locs['https://www.studio37.cc'].priority == 1.0


class TestSitemapEndpoint:
    def test_sitemap_xml(self, client, db_session):
        db_session.add(ContentPage(slug='pricing', title='Pricing', published=True))
        db_session.add(ContentPage(slug='bing-site-auth', published=True))
        db_session.add(BlogPost(title='Draft', slug='draft', content='x', published=False))
        db_session.add(BlogPost(title='Live', slug='live', content='x', published=True,
                                published_at=datetime.utcnow(), featured_image='https://img/live.jpg'))
        db_session.commit()

        response = client.get('/sitemap.xml')
        assert response.status_code == 200
        assert response.mimetype == 'application/xml'
        assert response.headers['Cache-Control'] == 'public, max-age=1800'
        body = response.data.decode('utf-8')
        assert '<loc>https://www.studio37.cc/pricing</loc>' in body
        assert '<loc>https://www.studio37.cc/blog/live</loc>' in body
        assert 'bing-site-auth' not in body
        assert '/blog/draft' not in body

    def test_store_error_returns_empty_urlset(self, client, db_session):
        with patch('app.routes.seo.ContentPage.published_pages', side_effect=RuntimeError('db down')):
            response = client.get('/sitemap.xml')
        assert response.status_code == 500
        assert b'<urlset' in response.data
        assert b'<url>' not in response.data

    def test_sitemap_debug(self, client, db_session):
        db_session.add(ContentPage(slug='pricing', published=True))
        db_session.add(ContentPage(slug='yandex-verification', published=True))
        db_session.commit()

        body = client.get('/api/sitemap-debug').get_json()
        assert body['contentPages'] == ['pricing']
        assert body['excludedPages'] == [{'slug': 'yandex-verification', 'reason': 'excluded-slug'}]


class TestRevalidate:
    """Test the on-demand revalidation endpoint"""

    def test_accepts_paths_and_reports_invalid(self, client, db_session):
        response = client.post('/api/revalidate', json={'paths': ['/blog', 'blog'], 'tags': ['posts']})
        assert response.status_code == 200
        body = response.get_json()
        assert body['revalidated'] == {'paths': ['/blog'], 'tags': ['posts']}
        assert body['errors'] == ['Invalid path: blog']

    def test_secret_required_when_configured(self, app, client, db_session):
        app.config['REVALIDATE_SECRET'] = 'shh'
        assert client.post('/api/revalidate', json={'paths': ['/']}).status_code == 401
        response = client.post('/api/revalidate', json={'paths': ['/']},
                               headers={'X-Revalidate-Secret': 'shh'})
        assert response.status_code == 200

    def test_webhook_receives_accepted_paths(self, app, client, db_session):
        app.config['REVALIDATE_WEBHOOK_URL'] = 'https://frontend.example/revalidate'
        with patch('app.utils.revalidation.requests.post') as post:
            response = client.post('/api/revalidate', json={'paths': ['/gallery']})
        assert response.get_json()['revalidated']['paths'] == ['/gallery']
        post.assert_called_once()
        assert post.call_args.kwargs['json'] == {'path': '/gallery'}

    def test_rate_limited(self, client, db_session):
        statuses = [client.post('/api/revalidate', json={}).status_code for _ in range(21)]
        assert statuses[-1] == 429
        assert set(statuses[:20]) == {200}
