from podstyles.api.main import app

if __name__ == "__main__":
    import os
    import uvicorn
    host = os.getenv("PODSTYLES_HOST", "127.0.0.1")
    port = int(os.getenv("PODSTYLES_PORT", "8010"))
    uvicorn.run(app, host=host, port=port)
