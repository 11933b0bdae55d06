"""
__main__.py — Permite ejecutar isubo como módulo:

    python -m isubo publish mi-post
"""

from isubo.cli import main

if __name__ == "__main__":
    main()
