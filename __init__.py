"""
StreamCat - A Python clone of the cat utility.

This module provides functionality to:
- Concatenate files and standard input to standard output
- Number all lines or only non-empty ones
- Mark line ends with $ and show tabs as ^I
- Squeeze runs of blank lines
- Show control and high-bit bytes in ^ and M- notation
"""

__version__ = "1.0.0"
__author__ = "tboy1337"
