"""
isubo — Publica posts markdown como issues de GitHub.

Este paquete contiene:
- deploy/      → Orquestación: jobs concurrentes por post + push de assets
- publishing/  → Formateo de posts, API de issues, Git
- utils/       → Logging y portapapeles

Uso:
    python -m isubo publish mi-post
    python -m isubo create "*.md"
    python -m isubo config --validate
"""

__version__ = "1.0.0"
