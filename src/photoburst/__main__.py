"""Allow running as: python -m photoburst"""

from photoburst.cli import main

if __name__ == "__main__":
    main()
