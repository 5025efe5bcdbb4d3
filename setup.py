"""
Setup file.
"""

import os

from setuptools import setup

URL = "https://github.com/zackees/zapdeps"
KEYWORDS = "embedded arduino compiler include dependencies libraries firmware microcontroller"
HERE = os.path.dirname(os.path.abspath(__file__))



if __name__ == "__main__":
    setup(
        maintainer="Zachary Vorhies",
        keywords=KEYWORDS,
        url=URL)
