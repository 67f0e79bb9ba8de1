"""Database seeder for local development of the board API."""
import argparse
import asyncio
import random
import time
from datetime import datetime, timedelta, timezone

from boardapi.database import Base, async_session, engine
from boardapi.models import Article, Board, User
from boardapi.passwords import hash_password

BOARDS = ["notice", "free", "qna", "jobs", "market"]

# Every seeded account shares this password.
DEFAULT_PASSWORD = "password123"


async def seed(small: bool = False) -> None:
    num_users = 5 if small else 30
    num_articles = 50 if small else 2000

    print(f"Seeding: {len(BOARDS)} boards, {num_users} users, {num_articles} articles")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        boards = [Board(title=name, description=f"The {name} board") for name in BOARDS]
        session.add_all(boards)
        await session.flush()
        print(f"  Created {len(boards)} boards")

        # One hash reused for every account; Argon2 is deliberately slow.
        password_hash = hash_password(DEFAULT_PASSWORD)
        users = [
            User(
                username=f"user_{i:04d}",
                email=f"user_{i:04d}@example.com",
                password_hash=password_hash,
            )
            for i in range(num_users)
        ]
        session.add_all(users)
        await session.flush()
        print(f"  Created {len(users)} users")

        now = datetime.now(timezone.utc)
        for i in range(num_articles):
            # Older than any cooldown so seeded authors can post immediately.
            created = now - timedelta(days=random.randint(1, 365), minutes=random.randint(0, 1440))
            session.add(
                Article(
                    title=f"Post {i} on {random.choice(BOARDS)}",
                    content=f"This is the body of post {i}. " * 10,
                    author_id=random.choice(users).id,
                    board_id=random.choice(boards).id,
                    is_deleted=random.random() < 0.05,
                    created_at=created,
                )
            )
        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s (password for all users: {DEFAULT_PASSWORD})")


def main():
    parser = argparse.ArgumentParser(description="Seed the board database")
    parser.add_argument("--small", action="store_true", help="Use a small dataset")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
