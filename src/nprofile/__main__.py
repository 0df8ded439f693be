"""Module entrypoint for `python -m nprofile`."""

from nprofile.cli import main

if __name__ == "__main__":  # pragma: no cover
    main()
