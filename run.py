#!/usr/bin/env python3
"""
Direct run script for the NMS Glyph Generator.
Use this when running from source without installing.
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from nms_glyph_generator.main import main

if __name__ == '__main__':
    sys.exit(main())
