"""Entry point wrapper for ``python -m vocal_harmonizer``.

Execution is forwarded to :func:`vocal_harmonizer.main` so ``python -m`` and
the installed ``vocal-harmonizer`` console script behave identically.

Example
-------
::

    python -m vocal_harmonizer --notes C4,D4,E4,C4 --lead soprano --seed 1
"""

from . import main

if __name__ == "__main__":
    main()
