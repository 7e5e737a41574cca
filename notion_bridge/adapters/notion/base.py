from abc import ABC, abstractmethod
from typing import Any


class AbstractNotionTransport(ABC):
	"""Interface for resource-oriented calls to the Notion API.

	Every method returns the parsed JSON body exactly as Notion sent it and
	raises a ``NotionAPIError`` subclass when Notion answers with an error.
	Payloads are forwarded as given; transports never reshape them.
	"""

	@abstractmethod
	async def search(self, body: dict[str, Any]) -> dict[str, Any]:
		"""POST /search."""
		...

	@abstractmethod
	async def retrieve_page(self, page_id: str) -> dict[str, Any]:
		"""GET /pages/{page_id}."""
		...

	@abstractmethod
	async def create_page(self, body: dict[str, Any]) -> dict[str, Any]:
		"""POST /pages."""
		...

	@abstractmethod
	async def update_page(self, page_id: str, body: dict[str, Any]) -> dict[str, Any]:
		"""PATCH /pages/{page_id}."""
		...

	@abstractmethod
	async def retrieve_database(self, database_id: str) -> dict[str, Any]:
		"""GET /databases/{database_id}."""
		...

	@abstractmethod
	async def query_database(self, database_id: str, body: dict[str, Any]) -> dict[str, Any]:
		"""POST /databases/{database_id}/query."""
		...

	@abstractmethod
	async def retrieve_block(self, block_id: str) -> dict[str, Any]:
		"""GET /blocks/{block_id}."""
		...

	@abstractmethod
	async def update_block(self, block_id: str, body: dict[str, Any]) -> dict[str, Any]:
		"""PATCH /blocks/{block_id}."""
		...

	@abstractmethod
	async def delete_block(self, block_id: str) -> dict[str, Any]:
		"""DELETE /blocks/{block_id}."""
		...

	@abstractmethod
	async def list_block_children(self, block_id: str, params: dict[str, Any]) -> dict[str, Any]:
		"""GET /blocks/{block_id}/children."""
		...

	@abstractmethod
	async def append_block_children(self, block_id: str, body: dict[str, Any]) -> dict[str, Any]:
		"""PATCH /blocks/{block_id}/children."""
		...

	async def aclose(self) -> None:
		"""Release the underlying HTTP resources."""
		return None
