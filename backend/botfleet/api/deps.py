"""API dependencies."""

from typing import Annotated

from fastapi import Depends

from botfleet.services.profiles import ProfileStore, get_profile_store
from botfleet.supervisor.supervisor import Supervisor, get_supervisor

SupervisorDep = Annotated[Supervisor, Depends(get_supervisor)]
ProfilesDep = Annotated[ProfileStore, Depends(get_profile_store)]
