"""Supabase-backed read access to registered devices."""

from dataclasses import dataclass

from supabase import Client

from slideshow_ingest.domain.blobs import Device, Orientation, orientation_for
from slideshow_ingest.domain.picker import parse_timestamp
from slideshow_ingest.services.image_ingest import DeviceRepository


@dataclass
class SupabaseDeviceRepository(DeviceRepository):
    """Supabase implementation of the device roster."""

    client: Client

    def list_devices(self) -> list[Device]:
        response = (
            self.client.table("devices")
            .select("id, name, width, height, orientation, gap, last_seen")
            .order("name")
            .execute()
        )
        devices = []
        for row in response.data or []:
            width = int(row["width"])
            height = int(row["height"])
            orientation = row.get("orientation")
            devices.append(
                Device(
                    id=str(row["id"]),
                    name=str(row.get("name") or row["id"]),
                    width=width,
                    height=height,
                    orientation=Orientation(orientation)
                    if orientation
                    else orientation_for(width, height),
                    gap=int(row.get("gap") or 0),
                    last_seen=parse_timestamp(row.get("last_seen")),
                )
            )
        return devices
