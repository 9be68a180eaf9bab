"""
Run script for the daily briefs API.
Starts the Quart app under Hypercorn, or manages the database.
Can be run from project root or src directory.
"""
import os
import sys
import asyncio
import argparse
import logging
from pathlib import Path

# This script is at: <project_root>/src/api/run_api.py
script_path = Path(__file__).resolve()
src_path = script_path.parent.parent  # src/
project_root = src_path.parent  # project root

sys.path.insert(0, str(src_path))

# Change to project root directory so relative paths work consistently
os.chdir(project_root)

from dotenv import load_dotenv
from hypercorn.asyncio import serve
from hypercorn.config import Config

load_dotenv(project_root / '.env')

from services.config import load_config
from services.database import Database
from services.identity import IdentityStore
from services.logging import setup_logging

logger = logging.getLogger(__name__)


def init_database(database: Database):
    """Initialize the cache and identity tables."""
    async def init():
        await database.init_tables()
        print(f"Database initialized at: {os.path.abspath(database.path)}")

    asyncio.run(init())


def create_token(database: Database, email: str, expires_hours: int):
    """Issue a bearer token for a user, creating the user if needed."""
    identity = IdentityStore(database)

    async def create():
        await database.init_tables()
        user_id = await identity.create_user(email)
        token = await identity.create_session(user_id, expires_hours=expires_hours)
        print(f"Bearer token for {email.lower()} (valid {expires_hours}h):")
        print(token)

    asyncio.run(create())


def run_server(config, database: Database, host: str = '0.0.0.0', port: int = 5000, debug: bool = False):
    """Run the API server."""
    from api.app import create_app

    app = create_app(config, database)
    logger.info(f"Starting daily briefs API on http://{host}:{port}")

    hypercorn_config = Config()
    hypercorn_config.bind = [f"{host}:{port}"]
    hypercorn_config.use_reloader = debug
    hypercorn_config.accesslog = '-'
    hypercorn_config.errorlog = '-'

    asyncio.run(serve(app, hypercorn_config))


def main():
    parser = argparse.ArgumentParser(description='Daily briefs API')
    parser.add_argument('command', nargs='?', default='run',
                        choices=['run', 'init-db', 'create-token'],
                        help='Command to execute')
    parser.add_argument('email', nargs='?',
                        help='User email (create-token only)')
    parser.add_argument('--host', default='0.0.0.0',
                        help='Host to bind to (default: 0.0.0.0)')
    parser.add_argument('--port', type=int, default=5000,
                        help='Port to bind to (default: 5000)')
    parser.add_argument('--expires-hours', type=int, default=24 * 30,
                        help='Token lifetime in hours (default: 720)')
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug mode')

    args = parser.parse_args()

    setup_logging(logging.DEBUG if args.debug else logging.INFO)
    config = load_config()
    database = Database(config.DATABASE_PATH)

    logger.info(f"Project root: {project_root}")

    if args.command == 'init-db':
        init_database(database)
    elif args.command == 'create-token':
        if not args.email:
            parser.error('create-token requires an email')
        create_token(database, args.email, args.expires_hours)
    else:
        run_server(config, database, host=args.host, port=args.port, debug=args.debug)


if __name__ == '__main__':
    main()
