"""Allow `python -m nativeplug`."""

from nativeplug.cli.cli import main

if __name__ == "__main__":
    main()
