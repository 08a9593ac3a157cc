import os

from dotenv import load_dotenv


def _load_dotenv_if_needed() -> None:
	# Do not auto-load .env during pytest to keep tests offline
	if os.getenv("PYTEST_CURRENT_TEST"):
		return
	# Values already present in the environment win
	load_dotenv(".env", override=False)


_load_dotenv_if_needed()
