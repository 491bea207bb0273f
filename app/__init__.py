"""droplist: photo-to-eBay listing service."""
from dotenv import load_dotenv

# .env values feed Settings; real environment variables still win
load_dotenv()
