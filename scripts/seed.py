"""Database seeder: users, media items and two-level comment threads."""
import asyncio
import argparse
import random
import time
from datetime import datetime, timezone, timedelta
from comment_threads.database import engine, async_session, Base
from comment_threads.models import User, Media, Comment

TOPICS = ["lighting", "composition", "colour grading", "framing", "depth of field",
          "long exposure", "street", "portrait", "landscape", "macro"]


async def seed(small: bool = False):
    num_users = 10 if small else 50
    num_media = 20 if small else 500
    max_roots_per_media = 5 if small else 30
    max_replies_per_root = 3 if small else 12

    print(f"Seeding: {num_users} users, {num_media} media, up to "
          f"{max_roots_per_media} roots x {max_replies_per_root} replies per media")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        users = []
        for i in range(num_users):
            user = User(name=f"User {i}", email=f"user_{i:04d}@example.com")
            session.add(user)
            users.append(user)
        await session.flush()
        print(f"  Created {len(users)} users")

        media_items = []
        for i in range(num_media):
            media = Media(
                name=f"shot_{i:05d}.jpg",
                is_public=random.random() > 0.1,  # 90% public
                owner_id=random.choice(users).id,
            )
            session.add(media)
            media_items.append(media)
        await session.flush()
        print(f"  Created {len(media_items)} media items")

        total_roots = 0
        total_replies = 0
        for media in media_items:
            base = datetime.now(timezone.utc) - timedelta(days=random.randint(0, 365))
            for r in range(random.randint(0, max_roots_per_media)):
                reply_count = random.randint(0, max_replies_per_root)
                # Counter written up front so it matches the replies inserted below.
                root = Comment(
                    text=f"Love the {random.choice(TOPICS)} here.",
                    author_id=random.choice(users).id,
                    media_id=media.id,
                    children_count=reply_count,
                    created_at=base + timedelta(minutes=r),
                )
                session.add(root)
                await session.flush()
                for c in range(reply_count):
                    session.add(Comment(
                        text=f"Agreed, especially the {random.choice(TOPICS)}.",
                        author_id=random.choice(users).id,
                        parent_id=root.id,
                        created_at=root.created_at + timedelta(minutes=c + 1),
                    ))
                total_roots += 1
                total_replies += reply_count
            await session.flush()

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Users: {num_users}")
    print(f"  Media: {num_media}")
    print(f"  Root comments: {total_roots}")
    print(f"  Replies: {total_replies}")


def main():
    parser = argparse.ArgumentParser(description="Seed the comment-threads database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (20 media items)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
