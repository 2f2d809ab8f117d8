import os

import uvicorn

from movieflix.core.config import settings

if __name__ == "__main__":
    PORT = os.getenv("PORT", settings.PORT)
    reload = settings.APP_ENV == "development"
    uvicorn.run("movieflix.core.app:create_app", factory=True, host="0.0.0.0", port=int(PORT), reload=reload)
