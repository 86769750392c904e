#!/usr/bin/env python3
"""
Stock Ledger Service
Flask-based service for stock movements and the transaction ledger.
"""

import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Fail fast on invalid configuration, before logging is set up
from stock_ledger.validators import ensure_valid_config
ensure_valid_config()

# Import application factory
from stock_ledger import create_app, init_database

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

# Application instance for `flask --app run ledger ...`
app = create_app(os.environ.get('FLASK_ENV', 'production'))


def main():
    """Main application entry point."""
    env = os.environ.get('FLASK_ENV', 'production')

    logger.info(f"Starting Stock Ledger Service in {env} mode")

    # Initialize database tables
    init_database(app)

    # Get host and port from environment
    host = os.environ.get('HOST', '0.0.0.0')
    port = int(os.environ.get('PORT', 5000))
    debug = env == 'development'

    logger.info(f"Starting Stock Ledger Service on {host}:{port}")

    # Run the application
    app.run(
        host=host,
        port=port,
        debug=debug,
        threaded=True
    )


if __name__ == '__main__':
    main()
