#!/usr/bin/env python3
"""
Seed a development database with a screen, a few movies and their shows.

Usage:
  python miscellaneous/seed_catalog.py            # Seed sample data
  python miscellaneous/seed_catalog.py token ID   # Print a development JWT for user ID
"""

import asyncio
import os
import sys
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID, uuid4

# Add the project root to the Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from showtime_booking_platform.database import init_database, close_database, get_db_session
from showtime_booking_platform.models import Screen
from showtime_booking_platform.schemas.catalog import MovieCreate, ScreenCreate, ShowCreate
from showtime_booking_platform.services import CatalogService
from showtime_booking_platform.utils.auth import create_access_token
from showtime_booking_platform.utils.exceptions import ShowtimeError

SAMPLE_MOVIES = [
    MovieCreate(
        title="The Last Projectionist",
        description="A night-shift projectionist discovers the final reel was never filmed.",
        duration_minutes=118,
        genre="Drama",
        rating="PG-13",
        release_date=date(2026, 9, 4),
    ),
    MovieCreate(
        title="Orbit of Sparrows",
        description="Two rival engineers race to bring a stranded crew home.",
        duration_minutes=132,
        genre="Sci-Fi",
        rating="PG",
        release_date=date(2026, 8, 21),
    ),
]

SHOW_PRICES = [Decimal("12.50"), Decimal("15.00")]


async def seed_catalog():
    """Create a screen, the sample movies and two days of shows."""
    print("🎬 Showtime Booking Platform - Catalogue Seeding")
    print("=" * 50)

    await init_database()

    try:
        async with get_db_session() as db:
            catalog = CatalogService(db)

            screen = await db.scalar(select(Screen).where(Screen.name == "Screen 1"))
            if screen is None:
                screen = await catalog.create_screen(
                    ScreenCreate(name="Screen 1", rows=8, seats_per_row=12, premium_rows=[7, 8])
                )
                print(f"✅ Created {screen.name} with {screen.total_seats} seats")
            else:
                print(f"ℹ️  Using existing {screen.name}")

            start = (datetime.now(timezone.utc) + timedelta(days=1)).replace(
                hour=12, minute=0, second=0, microsecond=0
            )

            for index, movie_data in enumerate(SAMPLE_MOVIES):
                movie = await catalog.create_movie(movie_data)
                print(f"✅ Created movie '{movie.title}'")

                for day in range(2):
                    show_time = start + timedelta(days=day, hours=index * 4)
                    show = await catalog.create_show(
                        ShowCreate(
                            movie_id=movie.id,
                            screen_id=screen.id,
                            show_time=show_time,
                            price=SHOW_PRICES[index % len(SHOW_PRICES)],
                        )
                    )
                    print(f"   🕒 Show {show.id} at {show.show_time.isoformat()}")

    except ShowtimeError as e:
        print(f"❌ Seeding failed: {e.message}")
        sys.exit(1)
    finally:
        await close_database()

    print("\n🎉 Seeding completed successfully!")


def print_token(user_id: str):
    """Print a development access token for a user id."""
    token = create_access_token(UUID(user_id), expires_delta=timedelta(hours=12))
    print(token)


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "token":
        print_token(sys.argv[2] if len(sys.argv) > 2 else str(uuid4()))
    else:
        asyncio.run(seed_catalog())
