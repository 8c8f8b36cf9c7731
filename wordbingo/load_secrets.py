import os
from dotenv import load_dotenv

load_dotenv()

relay_secret = os.getenv("RELAY_SECRET", "")
relay_url = os.getenv("RELAY_URL", "")
port = os.getenv("PORT")
git_commit = os.getenv("RENDER_GIT_COMMIT", "unknown")
reconnect_delay = float(os.getenv("RELAY_RECONNECT_DELAY", "3"))
session_label = os.getenv("SESSION_ID", "local-session")

if __name__ == "__main__":
    print(relay_url, port, git_commit, reconnect_delay, session_label)
