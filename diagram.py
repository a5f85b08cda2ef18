#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Add captions and grid lines to a PNG diagram.
"""

import diagram_annotator.cli


if __name__ == "__main__":
	diagram_annotator.cli.main()
