"""
Entry point for running blockproducer as a module: python -m blockproducer
"""

from blockproducer.cli.commands import app

if __name__ == "__main__":
    app()
