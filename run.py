from shopfund import create_app
from shopfund.realtime import socketio
import os

app = create_app()

if __name__ == "__main__":
    port = int(os.getenv("PORT", 5050))
    socketio.run(
        app,
        host=os.getenv("HOST", "127.0.0.1"),
        port=port,
        debug=False,
        use_reloader=False,
        log_output=True,
        allow_unsafe_werkzeug=True,
    )

# Local setup:
# alembic upgrade head
# python scripts/seed.py
# PORT=5050 python run.py         (API + Socket.IO in one process)
