"""Tipos de campo compartidos por los modelos."""

from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator

from chatdesk.core.clock import ensure_aware

# Supabase devuelve columnas `timestamp` sin zona; se interpretan como UTC.
UTCDateTime = Annotated[datetime, AfterValidator(ensure_aware)]
