# run_server.py
import uvicorn
from ehostelz.main import app

if __name__ == "__main__":
    # The reverse proxy forwards /api to port 3033
    uvicorn.run(
        app,
        host="127.0.0.1",
        port=3033,
        log_level="info",
    )
