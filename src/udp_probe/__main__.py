"""
Allow running udp_probe with python -m
"""

from .cli import main

if __name__ == '__main__':
    main()
