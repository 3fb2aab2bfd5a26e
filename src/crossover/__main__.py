"""Allow ``python -m crossover``."""

from .app import main

if __name__ == "__main__":  # pragma: no cover - manual entry point
    main()
