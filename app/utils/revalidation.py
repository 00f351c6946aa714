"""
On-demand revalidation of statically rendered frontend pages.

revalidate(paths, tags) validates each target and forwards the accepted ones
to REVALIDATE_WEBHOOK_URL (when configured). The result mirrors what the
frontend expects: {paths, tags} accepted plus a list of per-item errors.
"""

import logging
from typing import Iterable, List, Tuple

import requests
from flask import current_app


WEBHOOK_TIMEOUT = 10

logger = logging.getLogger(__name__)


def _notify(kind, value):
    webhook_url = current_app.config.get('REVALIDATE_WEBHOOK_URL')
    if not webhook_url:
        return
    headers = {}
    secret = current_app.config.get('REVALIDATE_SECRET')
    if secret:
        headers['X-Revalidate-Secret'] = secret
    response = requests.post(webhook_url, json={kind: value}, headers=headers, timeout=WEBHOOK_TIMEOUT)
    response.raise_for_status()


def revalidate(paths: Iterable = (), tags: Iterable = ()) -> Tuple[dict, List[str]]:
    revalidated = {'paths': [], 'tags': []}
    errors = []

    for path in paths or []:
        if not isinstance(path, str) or not path.startswith('/'):
            errors.append(f"Invalid path: {path}")
            continue
        try:
            _notify('path', path)
        except requests.RequestException as e:
            errors.append(f"Path {path} failed: {e}")
            continue
        revalidated['paths'].append(path)

    for tag in tags or []:
        if not isinstance(tag, str) or not tag:
            errors.append(f"Invalid tag: {tag}")
            continue
        try:
            _notify('tag', tag)
        except requests.RequestException as e:
            errors.append(f"Tag {tag} failed: {e}")
            continue
        revalidated['tags'].append(tag)

    logger.info(f"Revalidated paths={revalidated['paths']} tags={revalidated['tags']} errors={len(errors)}")
    return revalidated, errors
