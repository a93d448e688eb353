"""
CRM Pipeline Analytics: Entry Point
======================================

Run: python main.py --input data/raw/snapshot.json
"""

import logging
import os
import sys

from dotenv import load_dotenv

load_dotenv()

# Configure logging
logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger("crm-pipeline-analytics")

if __name__ == "__main__":
    from pipeline_analytics.pipeline_report import main

    logger.info("=" * 60)
    logger.info("  CRM PIPELINE ANALYTICS: Deal Health & Forecast")
    logger.info("=" * 60)
    logger.info(f"  Environment : {os.getenv('ENVIRONMENT', 'development')}")
    logger.info(f"  Log level   : {os.getenv('LOG_LEVEL', 'INFO')}")
    logger.info("=" * 60)

    sys.exit(main())
