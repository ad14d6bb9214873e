"""
Development server: ``python -m festival_backend.run``

Reloads on code changes. Production runs ``uvicorn festival_backend.api:app``
behind the gateway that sets ``X-User-Id``.
"""

import os

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "festival_backend.api:app",
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", "8000")),
        reload=True,
    )
