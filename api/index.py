import sys
from pathlib import Path

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from channel_sync.api.app import create_app

# ASGI app instance for serverless hosting
app = create_app()
