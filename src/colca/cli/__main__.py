"""CLI entry point for colca.cli module.

Enables execution via: python -m colca.cli (runs the four-angle car batch)
"""

from colca.cli.generate_cars import main

if __name__ == "__main__":
    main()
