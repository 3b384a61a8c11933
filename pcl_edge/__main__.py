import os

import uvicorn

from .config import settings


def main():
    uvicorn.run(
        "pcl_edge.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_level=settings.log_level.lower(),
        reload=False,
    )


if __name__ == "__main__":
    main()
