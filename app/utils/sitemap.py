"""
Sitemap Generation

FLOW OVERVIEW
- static_entries(base_url) → the fixed marketing pages.
- page_entries(base_url, pages) → published content pages minus verification slugs.
- post_entries(base_url, posts, now) → published blog posts; priority and change
  frequency follow the age of published_at (falling back to updated_at):
    priority:   ≤30 days 0.8, ≤90 days 0.7, older 0.5 (no date: 0.5)
    changefreq: ≤7 days daily, ≤30 days weekly, older monthly (no date: yearly)
  plus one /blog/category/<slug> entry per distinct category.
- render_sitemap(entries) → XML text with the image extension namespace.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from ..models import ContentPage


SITEMAP_NS = 'http://www.sitemaps.org/schemas/sitemap/0.9'
IMAGE_NS = 'http://www.google.com/schemas/sitemap-image/1.1'
EMPTY_SITEMAP = f'<?xml version="1.0"?><urlset xmlns="{SITEMAP_NS}"></urlset>'

# (path, priority, changefreq)
STATIC_PAGES = (
    ('', 1.0, 'weekly'),
    ('/services', 0.9, 'monthly'),
    ('/services/wedding-photography', 0.8, 'monthly'),
    ('/services/portrait-photography', 0.8, 'monthly'),
    ('/services/commercial-photography', 0.8, 'monthly'),
    ('/services/event-photography', 0.8, 'monthly'),
    ('/services/family-photography', 0.8, 'monthly'),
    ('/services/senior-portraits', 0.8, 'monthly'),
    ('/services/professional-headshots', 0.8, 'monthly'),
    ('/services/maternity-sessions', 0.8, 'monthly'),
    ('/book-a-session', 0.9, 'weekly'),
    ('/contact', 0.9, 'monthly'),
    ('/gallery', 0.8, 'weekly'),
    ('/about', 0.8, 'monthly'),
    ('/blog', 0.8, 'daily'),
    ('/local-photographer-pinehurst-tx', 0.8, 'monthly'),
)


@dataclass
class SitemapImage:
    loc: str
    title: Optional[str] = None
    caption: Optional[str] = None


@dataclass
class SitemapEntry:
    loc: str
    lastmod: Optional[datetime]
    changefreq: str
    priority: float
    image: Optional[SitemapImage] = None


def escape_xml(value) -> str:
    return (str(value)
            .replace('&', '&amp;')
            .replace('<', '&lt;')
            .replace('>', '&gt;')
            .replace('"', '&quot;')
            .replace("'", '&apos;'))


def _age_in_days(published_at, updated_at, now):
    compare = published_at or updated_at
    if compare is None:
        return None
    return (now - compare).days


def blog_priority(published_at, updated_at, now=None) -> float:
    age = _age_in_days(published_at, updated_at, now or datetime.utcnow())
    if age is None:
        return 0.5
    if age <= 30:
        return 0.8
    if age <= 90:
        return 0.7
    return 0.5


def blog_change_frequency(published_at, updated_at, now=None) -> str:
    age = _age_in_days(published_at, updated_at, now or datetime.utcnow())
    if age is None:
        return 'yearly'
    if age <= 7:
        return 'daily'
    if age <= 30:
        return 'weekly'
    return 'monthly'


def category_slug(category: str) -> str:
    return re.sub(r'[^a-z0-9]+', '-', category.lower()).strip('-')


def static_entries(base_url: str, now=None) -> List[SitemapEntry]:
    now = now or datetime.utcnow()
    return [SitemapEntry(f"{base_url}{path}", now, changefreq, priority)
            for path, priority, changefreq in STATIC_PAGES]


def page_entries(base_url: str, pages: Iterable) -> List[SitemapEntry]:
    return [
        SitemapEntry(f"{base_url}/{page.slug}", page.updated_at, 'weekly', 0.7)
        for page in pages
        if not ContentPage.is_verification_slug(page.slug)
    ]


def post_entries(base_url: str, posts: Iterable, now=None) -> List[SitemapEntry]:
    now = now or datetime.utcnow()
    entries = []
    categories = []
    for post in posts:
        image = None
        if post.featured_image:
            image = SitemapImage(post.featured_image, post.title, post.excerpt)
        entries.append(SitemapEntry(
            loc=f"{base_url}/blog/{post.slug}",
            lastmod=post.updated_at or post.published_at,
            changefreq=blog_change_frequency(post.published_at, post.updated_at, now),
            priority=blog_priority(post.published_at, post.updated_at, now),
            image=image,
        ))
        if post.category:
            slug = category_slug(post.category)
            if slug and slug not in categories:
                categories.append(slug)

    for slug in categories:
        entries.append(SitemapEntry(f"{base_url}/blog/category/{slug}", now, 'weekly', 0.6))
    return entries


def build_entries(base_url: str, pages: Iterable, posts: Iterable, now=None) -> List[SitemapEntry]:
    now = now or datetime.utcnow()
    return static_entries(base_url, now) + page_entries(base_url, pages) + post_entries(base_url, posts, now)


def _format_lastmod(value):
    return value.strftime('%Y-%m-%dT%H:%M:%S.000Z') if value else None


def render_sitemap(entries: Iterable[SitemapEntry]) -> str:
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<urlset xmlns="{SITEMAP_NS}" xmlns:image="{IMAGE_NS}">',
    ]
    for entry in entries:
        lines.append('  <url>')
        lines.append(f'    <loc>{escape_xml(entry.loc)}</loc>')
        lastmod = _format_lastmod(entry.lastmod)
        if lastmod:
            lines.append(f'    <lastmod>{lastmod}</lastmod>')
        lines.append(f'    <changefreq>{entry.changefreq}</changefreq>')
        lines.append(f'    <priority>{entry.priority:.1f}</priority>')
        if entry.image:
            lines.append('    <image:image>')
            lines.append(f'      <image:loc>{escape_xml(entry.image.loc)}</image:loc>')
            if entry.image.title:
                lines.append(f'      <image:title>{escape_xml(entry.image.title)}</image:title>')
            if entry.image.caption:
                lines.append(f'      <image:caption>{escape_xml(entry.image.caption)}</image:caption>')
            lines.append('    </image:image>')
        lines.append('  </url>')
    lines.append('</urlset>')
    return '\n'.join(lines) + '\n'


def debug_report(base_url: str, pages: Iterable, posts: Iterable) -> dict:
    """Counts of what the sitemap includes, with the reason each excluded page was dropped"""
    included, excluded = [], []
    for page in pages:
        reason = ContentPage.exclusion_reason(page.slug)
        if reason:
            excluded.append({'slug': page.slug, 'reason': reason})
        else:
            included.append(page.slug)
    post_slugs = [post.slug for post in posts]
    return {
        'baseUrl': base_url,
        'staticRoutes': [path or '/' for path, _, _ in STATIC_PAGES],
        'contentPagesCount': len(included),
        'contentPages': included,
        'excludedPagesCount': len(excluded),
        'excludedPages': excluded,
        'blogPostsCount': len(post_slugs),
        'blogPosts': post_slugs,
    }
