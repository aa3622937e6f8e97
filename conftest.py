"""Root conftest: runs before any test module imports."""

import os

# Rich honours FORCE_COLOR and injects ANSI escapes into CLI output, which
# breaks tests that parse `lightnote digest --json` or match plain text.
# Clear it before any Console() is created.
os.environ.pop("FORCE_COLOR", None)
os.environ["NO_COLOR"] = "1"
