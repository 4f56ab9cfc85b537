"""Project registry - creates fundraising projects and exposes their state."""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union

from fundme.db.models import (
    ACCOUNT_KIND_PROJECT,
    DESCRIPTION_MAX_LEN,
    IMAGE_URL_MAX_LEN,
    PROJECT_ID_MAX_LEN,
    TITLE_MAX_LEN,
    Project,
)
from fundme.errors import FieldTooLong, InvalidField, InvalidTimestamp
from fundme.log import get_logger
from fundme.messaging.publisher import EventPublisher
from fundme.runtime.addressing import check_wallet_identity, derive_project_address, normalize_identity
from fundme.runtime.environment import ExecutionEnvironment, check_amount

logger = get_logger(__name__)

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def check_length(field: str, value: str, max_len: int) -> str:
    """Reject strings whose UTF-8 encoding exceeds ``max_len`` bytes."""
    if not isinstance(value, str):
        raise InvalidField(field, type(value).__name__)
    size = len(value.encode("utf-8"))
    if size > max_len:
        raise FieldTooLong(field, max_len, size)
    return value


def check_timestamp(value: int, name: str = "end_time") -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidTimestamp(f"{name} must be an integer Unix timestamp, got {type(value).__name__}")
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise InvalidTimestamp(f"{name} is out of range: {value}")
    return value


@dataclass(frozen=True)
class ProjectMetadata:
    """Free-form display data for a project."""

    title: str
    description: str
    image_url: str

    def validate(self) -> None:
        check_length("title", self.title, TITLE_MAX_LEN)
        check_length("description", self.description, DESCRIPTION_MAX_LEN)
        check_length("image_url", self.image_url, IMAGE_URL_MAX_LEN)


@dataclass(frozen=True)
class ProjectView:
    """Read-only snapshot of a project."""

    address: str
    owner: str
    project_id: str
    metadata: ProjectMetadata
    target_amount: int
    current_amount: int
    end_time: int
    bump: int

    @classmethod
    def from_record(cls, project: Project) -> "ProjectView":
        return cls(
            address=project.address,
            owner=project.owner,
            project_id=project.project_id,
            metadata=ProjectMetadata(
                title=project.title,
                description=project.description,
                image_url=project.image_url,
            ),
            target_amount=project.target_amount,
            current_amount=project.current_amount,
            end_time=project.end_time,
            bump=project.bump,
        )


@dataclass(frozen=True)
class FundingStatus:
    """Progress of a project towards its goal at a point in time."""

    address: str
    current_amount: int
    target_amount: int
    end_time: int
    checked_at: int

    @property
    def is_open(self) -> bool:
        return self.checked_at < self.end_time

    @property
    def goal_reached(self) -> bool:
        return self.current_amount >= self.target_amount

    @property
    def remaining(self) -> int:
        return max(0, self.target_amount - self.current_amount)


def project_event_data(project: Project) -> Dict[str, Any]:
    return {
        "owner": project.owner,
        "project_id": project.project_id,
        "title": project.title,
        "target_amount": project.target_amount,
        "end_time": project.end_time,
        "bump": project.bump,
    }


class ProjectRegistry:
    """Creates and reads Project entities."""

    def __init__(self, env: ExecutionEnvironment, publisher: Optional[EventPublisher] = None):
        """Initialize the registry.

        Args:
            env: Execution environment the registry runs transactions in
            publisher: Optional publisher for ProjectCreated events
        """
        self.env = env
        self.publisher = publisher

    def create_project(
        self,
        owner: str,
        project_id: str,
        metadata: Union[ProjectMetadata, Mapping[str, str]],
        target_amount: int,
        end_time: int,
    ) -> str:
        """Register a new project owned by ``owner``.

        No deadline or goal validation is done: a project may close in the
        past or have a zero target.

        Args:
            owner: Creator identity
            project_id: Short id, unique per owner (at most 32 bytes)
            metadata: Title, description and image URL
            target_amount: Funding goal
            end_time: Unix timestamp after which pledges are refused

        Returns:
            Address of the new project

        Raises:
            InvalidIdentity: If owner lies in the derived address space
            AddressAlreadyInUse: If owner already has a project with this id
            FieldTooLong: If project_id or a metadata field is too long
        """
        owner = check_wallet_identity(owner)
        if isinstance(metadata, Mapping):
            metadata = ProjectMetadata(**metadata)
        check_length("project_id", project_id, PROJECT_ID_MAX_LEN)
        metadata.validate()
        check_amount(target_amount, "target_amount")
        check_timestamp(end_time)

        with self.env.transaction() as tx:
            address, bump = derive_project_address(owner, project_id, tx.program_id)
            tx.create_account(address, ACCOUNT_KIND_PROJECT)

            project = Project(
                address=address,
                owner=owner,
                project_id=project_id,
                title=metadata.title,
                description=metadata.description,
                image_url=metadata.image_url,
                target_amount=target_amount,
                current_amount=0,
                end_time=end_time,
                bump=bump,
            )
            tx.add(project)
            created_at = tx.current_time()
            event_data = project_event_data(project)

        logger.info(
            f"Created project {address}: owner={owner}, title={metadata.title!r}, "
            f"target={target_amount}, deadline={end_time}"
        )
        if self.publisher is not None:
            self.publisher.publish_project_created(address, created_at, event_data)
        return address

    def get_project(self, address: str) -> ProjectView:
        """Load a project by address.

        Raises:
            ProjectNotFound: If no project exists at address
        """
        with self.env.transaction() as tx:
            return ProjectView.from_record(tx.load_project(address))

    def find_project(self, owner: str, project_id: str) -> ProjectView:
        """Locate a project by re-deriving its address from owner and id."""
        address, _ = derive_project_address(owner, project_id, self.env.program_id)
        return self.get_project(address)

    def list_projects(self, owner: Optional[str] = None) -> List[ProjectView]:
        with self.env.transaction() as tx:
            query = tx.session.query(Project)
            if owner is not None:
                query = query.filter(Project.owner == normalize_identity(owner))
            return [ProjectView.from_record(p) for p in query.order_by(Project.created_at, Project.address)]

    def funding_status(self, address: str) -> FundingStatus:
        """Current and target amounts and deadline, evaluated at the environment clock."""
        with self.env.transaction() as tx:
            project = tx.load_project(address)
            return FundingStatus(
                address=project.address,
                current_amount=project.current_amount,
                target_amount=project.target_amount,
                end_time=project.end_time,
                checked_at=tx.current_time(),
            )
