"""Database seeder: users, posts, comments and votes through the SQL repositories."""
import asyncio
import argparse
import random
import time

from app.database import engine, async_session, Base
from app.repositories.sql import SqlPostRepository, SqlUserRepository
from app.schemas import CommentCreate, PostCreate
from app import posts

CATEGORIES = ["music", "funny", "videos", "programming", "news", "fashion"]
SEED_PASSWORD = "password123"


async def seed(small: bool = False):
    num_users = 5 if small else 50
    num_posts = 20 if small else 2000
    max_comments = 2 if small else 5

    print(f"Seeding: {num_users} users, {num_posts} posts")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        # Low bcrypt cost: seeded accounts are throwaway.
        user_repo = SqlUserRepository(session, bcrypt_rounds=4)
        post_repo = SqlPostRepository(session)

        users = [
            await user_repo.register(f"user_{i:04d}", SEED_PASSWORD)
            for i in range(num_users)
        ]
        print(f"  Created {len(users)} users (password: {SEED_PASSWORD})")

        total_comments = 0
        total_votes = 0
        for i in range(num_posts):
            author = random.choice(users)
            category = random.choice(CATEGORIES)
            if random.random() > 0.5:
                data = PostCreate(kind="text", title=f"Post {i} about {category}", category=category,
                                  text=f"This is the body of post {i}. " * 5)
            else:
                data = PostCreate(kind="link", title=f"Link {i} about {category}", category=category,
                                  url=f"https://example.com/{category}/{i}")
            post = await post_repo.add(posts.build_post(data, author))

            for _ in range(random.randint(0, max_comments)):
                commenter = random.choice(users)
                await post_repo.add_comment(
                    post.id,
                    posts.build_comment(CommentCreate(comment=f"Comment by {commenter.username}"), commenter),
                )
                total_comments += 1

            for voter in random.sample(users, k=random.randint(0, len(users) // 2)):
                if random.random() > 0.3:
                    await post_repo.upvote(post.id, voter.id)
                else:
                    await post_repo.downvote(post.id, voter.id)
                total_votes += 1

            if (i + 1) % 500 == 0:
                await session.commit()
                print(f"  {i + 1} posts created")

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Users: {num_users}")
    print(f"  Posts: {num_posts}")
    print(f"  Comments: {total_comments}")
    print(f"  Votes cast: {total_votes} (plus one self-upvote per post)")


def main():
    parser = argparse.ArgumentParser(description="Seed the reddit clone database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (20 posts)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
