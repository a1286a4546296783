"""ytdl-exec entry point.

Supports: python -m ytdl_exec
"""

from .app import main

if __name__ == "__main__":
    main()
