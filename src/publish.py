"""
Client for the remote tournament service that stores finalized brackets.
"""
import logging
from typing import Optional, Tuple

import requests

from core.snapshot import BracketSnapshot, get_podium

logger = logging.getLogger(__name__)


def build_payload(snapshot: BracketSnapshot) -> dict:
    return {
        'bracket': snapshot.to_dict(),
        'podium': get_podium(snapshot),
        'status': 'completed',
    }


def publish_bracket(base_url: str, tournament_id: str, snapshot: BracketSnapshot,
                    token: Optional[str] = None, timeout: int = 10) -> Tuple[bool, str]:
    """
    Send a finalized bracket to the tournament service.

    Returns (success, message). Network and HTTP failures are reported, not raised.
    """
    url = f"{base_url.rstrip('/')}/api/tournaments/{tournament_id}"
    headers = {'Content-Type': 'application/json'}
    if token:
        headers['x-auth-token'] = token

    try:
        response = requests.put(url, json=build_payload(snapshot), headers=headers, timeout=timeout)
    except requests.RequestException as e:
        logger.error(f'Publishing bracket for {tournament_id} failed: {e}')
        return False, f'Network error: {e}'

    if not response.ok:
        try:
            body = response.json()
            message = body.get('message') if isinstance(body, dict) else None
        except ValueError:
            message = None
        message = message or f'HTTP {response.status_code}'
        logger.warning(f'Tournament service rejected bracket for {tournament_id}: {message}')
        return False, message

    logger.info(f'Published bracket for {tournament_id}')
    return True, 'Bracket published.'
