"""Entry point for running the CLI as a module.

Usage:
    python -m parley.interfaces.cli ask "oi"
    python -m parley.interfaces.cli backends
"""

if __name__ == "__main__":
    # Import inside if __name__ to avoid RuntimeWarning about module already loaded
    from parley.interfaces.cli.app import main
    main()
