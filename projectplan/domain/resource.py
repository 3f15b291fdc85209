from typing import Dict, Iterable, List, Optional

from .errors import DuplicateIdError, NotFoundError, ProjectPlanError


class ResourceError(ProjectPlanError, ValueError):
    """Exception raised for errors in the Resource class."""

    pass


class Resource:
    """
    Represents a resource that activities can be assigned to.

    Disabled resources are excluded from scheduling and allocation but are
    kept in the registry so historical series can still refer to them.
    """

    def __init__(
        self,
        id: int,
        name: str = "",
        unit_cost: Optional[float] = None,
        disabled: bool = False,
        display_order: Optional[int] = None,
    ):
        """
        Initialize a resource.

        Args:
            id: Unique integer identifier for the resource
            name: Human-readable name, used as the series title
            unit_cost: Cost per allocated unit per time index; None falls back
                to the registry's default unit cost
            disabled: Whether the resource is excluded from scheduling
            display_order: Default position in aggregated series output
        """
        if isinstance(id, bool) or not isinstance(id, int):
            raise ResourceError(f"Resource id must be an integer, got {id!r}")
        self.id = id
        self.name = name or f"Resource {id}"

        if unit_cost is not None:
            if not isinstance(unit_cost, (int, float)) or unit_cost < 0:
                raise ResourceError("Unit cost must be a non-negative number")
            unit_cost = float(unit_cost)
        self.unit_cost = unit_cost

        self.disabled = bool(disabled)
        self.display_order = id if display_order is None else display_order

    def __repr__(self):
        state = " disabled" if self.disabled else ""
        return f"Resource({self.id}, {self.name!r}{state})"


class ResourceRegistry:
    """
    Project-level owner of all resources.

    Activities reference resources by id only; the registry resolves those ids,
    applies the registry-wide default unit cost and the "all disabled" switch.
    """

    def __init__(
        self,
        resources: Optional[Iterable[Resource]] = None,
        default_unit_cost: float = 0.0,
        are_disabled: bool = False,
    ):
        self._resources: Dict[int, Resource] = {}
        self.version = 0
        self.default_unit_cost = float(default_unit_cost)
        self.are_disabled = bool(are_disabled)
        for resource in resources or []:
            self.add(resource)

    @property
    def are_disabled(self) -> bool:
        """When set, every resource is treated as disabled."""
        return self._are_disabled

    @are_disabled.setter
    def are_disabled(self, value: bool):
        self._are_disabled = bool(value)
        self.version += 1

    def add(self, resource: Resource) -> "ResourceRegistry":
        """Register a resource; ids must be unique."""
        if resource.id in self._resources:
            raise DuplicateIdError(f"Resource {resource.id} already exists")
        self._resources[resource.id] = resource
        self.version += 1
        return self

    def remove(self, resource_id: int) -> Resource:
        if resource_id not in self._resources:
            raise NotFoundError(f"Resource {resource_id} not found", key=resource_id)
        self.version += 1
        return self._resources.pop(resource_id)

    def get(self, resource_id: int) -> Resource:
        try:
            return self._resources[resource_id]
        except KeyError:
            raise NotFoundError(
                f"Resource {resource_id} not found", key=resource_id
            ) from None

    def check_ids(self, resource_ids: Iterable[int]):
        """
        Raises:
            NotFoundError: For the lowest resource id not in the registry
        """
        for resource_id in sorted(set(resource_ids)):
            if resource_id not in self._resources:
                raise NotFoundError(
                    f"Resource {resource_id} not found", key=resource_id
                )

    def set_disabled(self, resource_id: int, disabled: bool = True) -> "ResourceRegistry":
        self.get(resource_id).disabled = bool(disabled)
        self.version += 1
        return self

    def is_enabled(self, resource_id: int) -> bool:
        """True when the resource exists and takes part in scheduling."""
        if self.are_disabled:
            return False
        resource = self._resources.get(resource_id)
        return resource is not None and not resource.disabled

    def enabled_ids(self, resource_ids: Iterable[int]) -> List[int]:
        """Filter ``resource_ids`` down to enabled ones, ascending."""
        return sorted(rid for rid in set(resource_ids) if self.is_enabled(rid))

    def unit_cost(self, resource_id: int) -> float:
        resource = self.get(resource_id)
        if resource.unit_cost is None:
            return self.default_unit_cost
        return resource.unit_cost

    def enabled(self) -> List[Resource]:
        return [r for r in self if self.is_enabled(r.id)]

    def copy(self) -> "ResourceRegistry":
        clone = ResourceRegistry(
            default_unit_cost=self.default_unit_cost, are_disabled=self.are_disabled
        )
        for resource in self:
            clone.add(
                Resource(
                    resource.id,
                    resource.name,
                    unit_cost=resource.unit_cost,
                    disabled=resource.disabled,
                    display_order=resource.display_order,
                )
            )
        return clone

    def __contains__(self, resource_id):
        return resource_id in self._resources

    def __iter__(self):
        # Always ascending id so callers get a stable order
        return iter(self._resources[rid] for rid in sorted(self._resources))

    def __len__(self):
        return len(self._resources)
