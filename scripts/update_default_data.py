#!/usr/bin/env python3
"""
Rebuild nms_glyph_generator/data/defaultData.json from the NMS wiki.

Crawls every page of the Regions Cargo table (one request every 35 seconds),
so a full run takes several minutes. Intended for scheduled CI jobs.

Usage:
    python scripts/update_default_data.py [output_path]
"""

import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from nms_glyph_generator.snapshot import build_snapshot
from nms_glyph_generator.wiki_client import FetchError

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger('update_default_data')


def main() -> int:
    output = Path(sys.argv[1]) if len(sys.argv) > 1 else None
    try:
        build_snapshot(output)
    except FetchError as e:
        logger.error("=== Error updating data ===")
        logger.error(e)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
