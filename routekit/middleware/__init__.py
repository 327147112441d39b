"""Ready-made middleware: auth, content checks, logging, recovery, throttling and more."""