"""
Initial tournaments and news for a fresh database.

Loaded once: seeding is skipped whenever the tournaments table already has
rows, so calling it on every startup is safe.
"""
import logging
from datetime import datetime

from sqlalchemy import func, select

from .models import NewsItem, Tournament
from .store import Store

logger = logging.getLogger(__name__)


SEED_TOURNAMENTS = [
    {
        'title': 'FF World Series Qualifier',
        'entry_fee': 50,
        'prize_pool': 5000,
        'start_time': datetime(2026, 3, 10, 20, 0),
        'map': 'Bermuda',
        'mode': 'Squad',
        'max_players': 12,
        'description': 'The official qualifier for the upcoming World Series. Only top teams will advance.',
        'rules': '1. No Emulators\n2. Level 50+ Required\n3. Fair Play Only',
        'image_url': 'https://picsum.photos/seed/ffws/800/400',
    },
    {
        'title': 'Asia Invitational',
        'entry_fee': 20,
        'prize_pool': 2000,
        'start_time': datetime(2026, 3, 15, 18, 0),
        'map': 'Purgatory',
        'mode': 'Duo',
        'max_players': 24,
        'description': 'International duo tournament featuring top players from across Asia.',
        'rules': 'Standard international rules apply.',
        'image_url': 'https://picsum.photos/seed/asia/800/400',
    },
]

SEED_NEWS = [
    {
        'title': 'New Season Starts!',
        'content': 'Get ready for the most competitive season yet with over $10k in prizes.',
        'image_url': 'https://picsum.photos/seed/news1/800/400',
    },
    {
        'title': 'Update v2.4 Patch Notes',
        'content': 'Check out the latest changes to the tournament platform and scoring system.',
        'image_url': 'https://picsum.photos/seed/news2/800/400',
    },
]


def seed_database(store: Store) -> bool:
    """Insert the default tournaments and news. Returns False if already seeded."""
    count = store.session.execute(select(func.count(Tournament.id))).scalar_one()
    if count:
        logger.debug(f"Skipping seed, {count} tournaments present")
        return False

    with store.atomic():
        for fields in SEED_TOURNAMENTS:
            store.insert(Tournament, **fields)
        for fields in SEED_NEWS:
            store.insert(NewsItem, **fields)

    logger.info(f"Seeded {len(SEED_TOURNAMENTS)} tournaments and {len(SEED_NEWS)} news items")
    return True
