"""Interface to the collaborator that creates the registry resources."""

from abc import ABC, abstractmethod

from marketplace_operator.manifest import CatalogSourceConfig

__all__ = ["ResourceDeployer"]


class ResourceDeployer(ABC):
    """Creates the resources that serve the catalog of a CatalogSourceConfig.

    The deployment, service, service account, role, role binding and the
    CatalogSource object are built and written by the implementation.
    """

    @abstractmethod
    async def create_or_ensure(self, resource: CatalogSourceConfig) -> None:
        """Create the registry resources or ensure they are up to date.

        Raises on failure, the error is surfaced unmodified.
        """

    @abstractmethod
    def populate_status(self, resource: CatalogSourceConfig) -> None:
        """Fill in the package summaries of the resource status."""
