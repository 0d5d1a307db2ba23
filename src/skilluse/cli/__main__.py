from skilluse.cli.main import app


def main():
    """Entry point for the ``skilluse`` console script."""
    app()


if __name__ == "__main__":
    main()
