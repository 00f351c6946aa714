"""
Blog and Alt-Text Content Processing

FLOW OVERVIEW
- build_site_context / build_blog_prompt
  • Real about/services copy and recent posts are embedded so the model writes
    from the studio's own facts; linking is restricted to studio37.cc paths.
- process_generated_post(data) → cleaned post dict
  • Decode entities and literal escape sequences left in model JSON.
  • ensure_section_headings: the five emoji H2 sections, in canonical order.
  • ensure_links: competitor domains rewritten, external links flattened to text,
    first brand mention linked, booking CTA appended when no CTA link exists.
- build_alt_text_prompt / clean_alt_text
  • Alt text is unquoted and capped at 125 characters.
"""

import re
from typing import Any, Dict, Iterable, List, Optional


SITE_ORIGIN = 'https://www.studio37.cc'
BRAND = 'Studio37 Photography'

REQUIRED_SECTIONS = (
    '## 🎯 Vision & Purpose',
    '## 🎨 Style & Aesthetic',
    '## 🤝 Client Experience & Collaboration',
    '## 💰 Investment & Value',
    '## 📍 Local Advantage (Pinehurst, TX)',
)

INTERNAL_LINKS = (
    '/services', '/wedding-photography', '/portrait-photography', '/commercial-photography',
    '/event-photography', '/family-photography', '/senior-portraits', '/professional-headshots',
    '/maternity-sessions', '/book-a-session', '/contact', '/about', '/blog', '/gallery',
)

SERVICE_PAGE_SLUGS = (
    'services', 'wedding-photography', 'portrait-photography', 'commercial-photography',
    'event-photography', 'family-photography', 'senior-portraits', 'professional-headshots',
    'maternity-sessions',
)

BOOKING_CTA = (
    '\n\n---\n\n**Ready to create something beautiful?** '
    f'[Book a session with Studio37]({SITE_ORIGIN}/book-a-session) or '
    f'[contact us]({SITE_ORIGIN}/contact) to discuss your photography needs.'
)

ALT_TEXT_MAX_LENGTH = 125

ENTITY_REPLACEMENTS = (
    ('&lt;', '<'),
    ('&gt;', '>'),
    ('&quot;', '"'),
    ('&#39;', "'"),
    ('&apos;', "'"),
    ('&nbsp;', ' '),
    # Last so "&amp;lt;" decodes one level only
    ('&amp;', '&'),
)

# Literal "\uXXXX" sequences the model sometimes emits instead of the character
UNICODE_ESCAPE = re.compile(r'\\u([0-9a-fA-F]{4})')

EXTERNAL_LINK = re.compile(r'\[([^\]]+)\]\(https?://(?!www\.studio37\.cc)[^)]+\)', re.IGNORECASE)
COMPETITOR_DOMAIN = re.compile(r'(?:www\.)?studio37photography\.com', re.IGNORECASE)
UNLINKED_BRAND = re.compile(r'(?<!\[)Studio37 Photography(?![\]\)])')


def decode_entities(text: str) -> str:
    for entity, replacement in ENTITY_REPLACEMENTS:
        text = text.replace(entity, replacement)
    return text


def normalize_unicode_escapes(text: str) -> str:
    return UNICODE_ESCAPE.sub(lambda match: chr(int(match.group(1), 16)), text)


def unescape_newlines(text: str) -> str:
    return (text.replace('\\n\\n', '\n\n')
            .replace('\\n', '\n')
            .replace('\\t', '\t')
            .replace('\\r', ''))


def clean_inline(text: Optional[str]) -> str:
    """Titles, excerpts and meta descriptions are single-line"""
    if not isinstance(text, str):
        return ''
    return normalize_unicode_escapes(decode_entities(text)).replace('\\n', ' ').strip()


def ensure_section_headings(markdown: str) -> str:
    out = markdown or ''
    present = [heading for heading in REQUIRED_SECTIONS if heading in out]
    if not present:
        return ''.join(f"{heading}\n\n" for heading in REQUIRED_SECTIONS) + out

    sections = {}
    for heading in present:
        start = out.index(heading)
        end = len(out)
        for other in present:
            other_index = out.index(other)
            if other != heading and other_index > start:
                end = min(end, other_index)
        sections[heading] = out[start:end].strip()

    preamble = out[:min(out.index(heading) for heading in present)].strip()
    body = '\n\n'.join(sections.get(heading, f"{heading}\n") for heading in REQUIRED_SECTIONS)
    return f"{preamble}\n\n{body}" if preamble else body


def ensure_links(markdown: str) -> str:
    out = COMPETITOR_DOMAIN.sub('www.studio37.cc', markdown or '')
    out = EXTERNAL_LINK.sub(r'\1', out)

    if f'[{BRAND}](' not in out and BRAND in out:
        out = UNLINKED_BRAND.sub(f'[{BRAND}]({SITE_ORIGIN}/services)', out, count=1)

    if 'book-a-session' not in out and '/contact' not in out:
        out += BOOKING_CTA
    return out


def process_content(content: str) -> str:
    cleaned = normalize_unicode_escapes(decode_entities(unescape_newlines(content or ''))).strip()
    return ensure_links(ensure_section_headings(cleaned))


def slugify(title: str) -> str:
    return re.sub(r'[^a-z0-9]+', '-', (title or '').lower()).strip('-')[:80]


def process_generated_post(data: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize the model's JSON into the shape the blog editor saves"""
    title = clean_inline(data.get('title'))
    tags = data.get('suggestedTags') or data.get('tags') or []
    if not isinstance(tags, list):
        tags = [str(tags)]
    return {
        'title': title,
        'slug': slugify(title),
        'meta_description': clean_inline(data.get('metaDescription') or data.get('meta_description')),
        'excerpt': clean_inline(data.get('excerpt')),
        'content': process_content(data.get('content') or ''),
        'tags': [str(tag).strip() for tag in tags if str(tag).strip()],
        'category': clean_inline(data.get('category')) or None,
    }


def build_site_context(about_content: Optional[str], service_pages: Iterable, recent_posts: Iterable) -> str:
    context = ''
    if about_content:
        context += f"\n\nAbout Studio37:\n{about_content[:500]}"
    service_pages = list(service_pages)
    if service_pages:
        context += '\n\nOur Services:\n'
        for page in service_pages:
            context += f"- {page.title}: {(page.content or '')[:200]}\n"
    recent_posts = list(recent_posts)
    if recent_posts:
        context += '\n\nExisting Blog Style Reference:\n'
        for post in recent_posts:
            context += f"- {post.title}: {post.excerpt or (post.content or '')[:150]}\n"
    return context


def build_blog_prompt(topic: str, keywords=None, tone=None, word_count=None, site_context: str = '') -> str:
    word_count = word_count or 800
    if isinstance(keywords, list):
        keywords = ', '.join(keywords)
    links = '\n'.join(f"   - {path}" for path in INTERNAL_LINKS)
    sections = '\n'.join(REQUIRED_SECTIONS)
    default_context = ('Studio37 Photography is a professional photography studio based in Pinehurst, TX, '
                       'offering wedding, portrait, commercial, and event photography services.')
    return f"""You are an expert content strategist and senior copywriter for {BRAND}, a professional photography studio in Pinehurst, TX.

LINKING RULES:
1. ONLY link to the www.studio37.cc domain
2. NEVER link to www.studio37photography.com or any external photography sites
3. Use these internal links ONLY:
{links}

SITE CONTEXT (use this real information, do not invent facts):
{site_context or default_context}

Write a complete, SEO-optimized blog post about: {topic}

STRUCTURE (these exact H2 headings, in this order):
{sections}

Under each H2 include 1-2 H3 subsections with concise, keyword-relevant titles.

- Tone: {tone or 'professional and friendly'}
- Target length: {word_count}-{int(word_count) + 200} words
- Target keywords: {keywords or 'photography, Studio37, Pinehurst TX'}
- Markdown only, short paragraphs (2-3 sentences)
- Mention {BRAND} and Pinehurst, TX naturally at least twice
- End with a call-to-action linking to /book-a-session

Return JSON with keys: title, metaDescription, content, excerpt, suggestedTags (array), category."""


def build_alt_text_prompt(title=None, description=None, category=None, tags: Optional[List[str]] = None,
                          context=None) -> str:
    lines = [
        "You are an SEO expert writing alt text for a photography studio's gallery images.",
        '',
        'Studio: Studio37 Photography in Pinehurst, TX',
        f"Image Category: {category or 'general'}",
        f"Image Title: {title or 'Untitled'}",
    ]
    if description:
        lines.append(f"Description: {description}")
    if tags:
        lines.append(f"Tags: {', '.join(tags)}")
    if context:
        lines.append(f"Context: {context}")
    lines.extend([
        '',
        'Write a concise, SEO-optimized alt text (50-125 characters) that:',
        "- Describes what's in the image clearly",
        '- Includes relevant photography keywords naturally',
        '- Mentions the location (Pinehurst, TX) if appropriate',
        '- Avoids phrases like "image of" or "picture of"',
        '',
        'Return ONLY the alt text, no backticks or commentary.',
    ])
    return '\n'.join(lines)


def clean_alt_text(raw: str) -> str:
    alt_text = (raw or '').strip().strip('`').strip()
    alt_text = re.sub(r'^"|"$', '', alt_text)
    if len(alt_text) > ALT_TEXT_MAX_LENGTH:
        alt_text = alt_text[:ALT_TEXT_MAX_LENGTH - 3] + '...'
    return alt_text
