import sys

import chordblink.cli


if __name__ == "__main__":
	sys.exit(chordblink.cli.main())
