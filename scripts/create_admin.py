# scripts/create_admin.py
#
# Registration refuses the admin role, so admin accounts are seeded here:
#   python scripts/create_admin.py --name admin --email admin@example.com --phone 600000000 --password <pwd>

import argparse
import asyncio
import sys

from dotenv import load_dotenv

# Load .env before the settings object is built on import
load_dotenv()

from padel_api import db
from padel_api.core.errors import DuplicateUserError
from padel_api.crud import user as user_crud
from padel_api.schemas.user import UserCreate
from padel_api.services import user_rules


async def main(args: argparse.Namespace) -> int:
    print("--- [Seed] Creating admin account ---")

    params_error = user_rules.registration_error(args.name, args.email, args.password, args.phone)
    if params_error:
        print(f"❌ [ERROR] {params_error}")
        return 1

    await db.init_db_connections()
    if db.mongo_client is None:
        print("❌ [ERROR] Could not connect to MongoDB. Check MONGO_DB_URL.")
        return 1

    try:
        phone = int(args.phone)
        existing = await user_crud.find_matching(name=args.name, email=args.email, phone=phone)
        if existing:
            fields = user_rules.duplicated_fields(existing, args.name, args.email, phone)
            print(f"🟡 [SKIP] {user_rules.duplicate_message(fields)}")
            return 0

        admin = await user_crud.create_user(
            UserCreate(name=args.name, email=args.email, password=args.password, phone=phone, role="admin")
        )
        print(f"✅ Admin '{admin.name}' created with id {admin.id}.")
        return 0
    except DuplicateUserError as e:
        print(f"🟡 [SKIP] {user_rules.duplicate_message(e.fields)}")
        return 0
    finally:
        await db.close_db_connections()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create an admin account.")
    parser.add_argument("--name", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument("--phone", required=True)
    parser.add_argument("--password", required=True)

    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    sys.exit(asyncio.run(main(parser.parse_args())))
