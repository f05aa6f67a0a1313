import argparse
import asyncio
import sys
from pathlib import Path

backend_root = Path(__file__).resolve().parents[1]
# Ensure backend root on import path
sys.path.insert(0, str(backend_root))


async def recreate_db(seed: bool):
    from app.config import settings
    from app.database import AsyncSessionLocal, create_tables, engine

    # Remove existing SQLite file
    url = engine.url
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        db_path = Path(url.database)
        if db_path.exists():
            db_path.unlink()

    await create_tables()

    if seed:
        from app.repositories.sql import SqlCommentRepository, SqlPostRepository, SqlUserRepository
        from app.security import hash_password

        async with AsyncSessionLocal() as session:
            users = SqlUserRepository(session)
            posts = SqlPostRepository(session)
            comments = SqlCommentRepository(session)
            alice = await users.create({"email": "alice@example.com", "password": hash_password("secret"), "name": "alice"})
            bob = await users.create({"email": "bob@example.com", "password": hash_password("secret"), "name": "bob"})
            for i in range(1, 21):
                author = alice if i % 2 else bob
                post = await posts.create({"user_id": author.id, "title": f"post {i}", "content": f"content of post {i}"})
                if i % 5 == 0:
                    await comments.create({"post_id": post.id, "user_id": alice.id, "content": "nice"})
        print(f"Seeded demo data into {settings.DATABASE_URL}")

    await engine.dispose()


def main():
    parser = argparse.ArgumentParser(description="Recreate the database schema")
    parser.add_argument("--seed", action="store_true", help="insert demo users, posts and comments")
    args = parser.parse_args()
    asyncio.run(recreate_db(args.seed))
    print('Database recreated.')


if __name__ == '__main__':
    main()
