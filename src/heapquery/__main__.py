import sys

from heapquery.repl import main

sys.exit(main())
