"""Prints an access token for a user id: python scripts/make_token.py 1"""
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parent.parent))

from app.core.security import create_access_token

if __name__ == "__main__":
    user_id = int(sys.argv[1]) if len(sys.argv) > 1 else 1
    print(create_access_token(data={"sub": str(user_id)}))
