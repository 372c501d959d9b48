import uvicorn
from Relay_app.config import settings

def run_relay():
    print(f"Streamers: ws://localhost:{settings.port}/stream")
    print(f"Viewers:   ws://localhost:{settings.port}/view")
    uvicorn.run("Relay_app.main:app", host=settings.http_host, port=settings.port)

if __name__ == "__main__":
    run_relay()
