"""Shared test fixtures for navconv tests."""

import struct

import pytest

from navconv.formats.nmea import checksum


def nmea_sentence(body: str) -> str:
    """Wrap a sentence body in '$' and its checksum."""
    return f"${body}*{checksum(body):02X}"


@pytest.fixture(autouse=True)
def clean_plugins():
    """Reset global plugin state between tests."""
    from navconv.plugins import reset_plugins

    reset_plugins()
    yield
    reset_plugins()


@pytest.fixture
def gpx11_data():
    return b"""<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="fixture" xmlns="http://www.topografix.com/GPX/1/1">
  <metadata>
    <name>Sample</name>
  </metadata>
  <wpt lat="48.1" lon="11.5">
    <ele>520.0</ele>
    <name>Home</name>
  </wpt>
  <rte>
    <name>Tour</name>
    <rtept lat="48.1" lon="11.5"><name>A</name></rtept>
    <rtept lat="48.2" lon="11.6"><name>B</name></rtept>
  </rte>
  <trk>
    <name>Walk</name>
    <trkseg>
      <trkpt lat="48.1" lon="11.5"><ele>520.0</ele><time>2020-05-01T10:00:00Z</time></trkpt>
      <trkpt lat="48.11" lon="11.51"><ele>525.0</ele><time>2020-05-01T10:05:00Z</time></trkpt>
    </trkseg>
  </trk>
</gpx>
"""


@pytest.fixture
def gpx_latin1_data():
    return (b'<?xml version="1.0" encoding="ISO-8859-1"?>\n'
            b'<gpx version="1.1" creator="fixture" xmlns="http://www.topografix.com/GPX/1/1">\n'
            b'  <wpt lat="48.137" lon="11.575"><name>M\xfcnchen</name></wpt>\n'
            b'</gpx>\n')


@pytest.fixture
def gpx10_data():
    return b"""<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.0" creator="fixture" xmlns="http://www.topografix.com/GPX/1/0">
  <trk>
    <name>Old Walk</name>
    <trkseg>
      <trkpt lat="52.5" lon="13.4"><time>2008-01-01T08:00:00Z</time></trkpt>
      <trkpt lat="52.51" lon="13.41"><time>2008-01-01T08:01:00Z</time></trkpt>
    </trkseg>
  </trk>
</gpx>
"""


@pytest.fixture
def bcr_data():
    return (
        "[CLIENT]\r\n"
        "REQUEST=TRUE\r\n"
        "ROUTENAME=Weekend\r\n"
        "DESCRIPTIONLINES=0\r\n"
        "STATION1=Standort,999999999\r\n"
        "STATION2=Standort,210995416\r\n"
        "[COORDINATES]\r\n"
        "STATION1=1022185,6174453\r\n"
        "STATION2=1043520,6190360\r\n"
        "[DESCRIPTION]\r\n"
        "STATION1=72574 Bad Urach,Zentrum\r\n"
        "STATION2=WP 12 Feldweg\r\n"
        "[ROUTE]\r\n"
    ).encode("iso-8859-1")


@pytest.fixture
def nmea_data():
    lines = [
        nmea_sentence("GPGGA,123519,4807.038,N,01131.000,E,1,08,0.9,545.4,M,46.9,M,,"),
        nmea_sentence("GPRMC,123519,A,4807.038,N,01131.000,E,022.4,084.4,230394,003.1,W"),
        nmea_sentence("GPGSA,A,3,04,05,,09,12,,,24,,,,,2.5,1.3,2.1"),
        nmea_sentence("GPGGA,123520,4807.040,N,01131.010,E,1,08,0.9,546.0,M,46.9,M,,"),
    ]
    return ("\r\n".join(lines) + "\r\n").encode("ascii")


@pytest.fixture
def iblue_data():
    return (
        "INDEX,RCR,DATE,TIME,VALID,LATITUDE,N/S,LONGITUDE,E/W,HEIGHT,SPEED,HEADING,DISTANCE,\r\n"
        "3656,T,2010/12/09,10:59:05,SPS,28.649061,N,17.896196,W,513.863 M,15.862 km/h,178.240250,34.60 M,\r\n"
        "3657,T,2010/12/09,10:59:10,NO FIX,28.648900,N,17.896200,W,512.000 M,0.000 km/h,0.000000,0.00 M,\r\n"
        "3658,T,2010/12/09,10:59:15,DGPS,28.648700,N,17.896250,W,510.500 M,14.100 km/h,180.000000,22.10 M,\r\n"
    ).encode("ascii")


@pytest.fixture
def pcx5_data():
    return (
        "H  SOFTWARE NAME & VERSION\r\n"
        "I  PCX5 2.09 by Garmin\r\n"
        "\r\n"
        "H  IDNT   LATITUDE    LONGITUDE    DATE      TIME     ALT   DESCRIPTION\r\n"
        "W  001    N49.8542100 E008.6413700 13-NOV-07 14:32:05    140 Home\r\n"
        "W  002    S33.9000000 W018.4000000 31-DEC-89 00:00:00  -9999 Cape\r\n"
    ).encode("iso-8859-1")


@pytest.fixture
def pcx5_track_data():
    return (
        "H  LATITUDE    LONGITUDE    DATE      TIME     ALT    ;track\r\n"
        "T  N49.8542100 E008.6413700 13-NOV-07 14:32:05    140\r\n"
        "T  N49.8552100 E008.6423700 13-NOV-07 14:33:05    142\r\n"
    ).encode("iso-8859-1")


@pytest.fixture
def pcx5_degenerate_data():
    """Parses as PCX5 but every position is garbage."""
    return (
        "W  001    N00.0000000 E000.0000000 31-DEC-89 00:00:00 999999 X\r\n"
        "W  002    N00.0000000 E000.0000000 31-DEC-89 00:00:00 999999 Y\r\n"
    ).encode("iso-8859-1")


@pytest.fixture
def ozi_track_data():
    return (
        "OziExplorer Track Point File Version 2.1\r\n"
        "WGS 84\r\n"
        "Altitude is in Feet\r\n"
        "Reserved 3\r\n"
        "0,2,255,Morning Walk,0,0,2,8421376\r\n"
        "3\r\n"
        "  48.123456,  11.123456,1,  1640.0,40000.0000000, 06-Jul-09, 00:00:00\r\n"
        "  48.124456,  11.124456,0,  -777,40000.0010000, 06-Jul-09, 00:01:26\r\n"
        "  48.125456,  11.125456,1,  1650.0,40000.0020000, 06-Jul-09, 00:02:53\r\n"
    ).encode("iso-8859-1")


@pytest.fixture
def ozi_route_data():
    return (
        "OziExplorer Route File Version 1.0\r\n"
        "WGS 84\r\n"
        "Reserved 1\r\n"
        "Reserved 2\r\n"
        "R,  0,FIRST,,0\r\n"
        "W,  0,  1,  1,START,  48.1,  11.5,40000.0,0,1,3,0,65535,Start point,0,0\r\n"
        "W,  0,  2,  2,,  48.2,  11.6,40000.0,0,1,3,0,65535,Kirche\xd1 Markt,0,0\r\n"
        "R,  1,SECOND,,0\r\n"
        "W,  1,  1,  3,END,  48.3,  11.7,0,0,1,3,0,65535,,0,0\r\n"
    ).encode("iso-8859-1")


@pytest.fixture
def ozi_waypoint_data():
    return (
        "OziExplorer Waypoint File Version 1.1\r\n"
        "WGS 84\r\n"
        "Reserved 2\r\n"
        "garmin\r\n"
        "1,HOME,  48.100000,  11.500000,40000.0,0,1,3,0,65535,My home,0,0,0,  1640,6,0,17\r\n"
        "2,WORK,  48.200000,  11.600000,40000.0,0,1,3,0,65535,,0,0,0,  -777,6,0,17\r\n"
    ).encode("iso-8859-1")


@pytest.fixture
def itn_data():
    return b"883208|4853893|Stuttgart|4|\r\n1000000|4850000|Zwischenhalt|0|\r\n1063862|4853271|Ulm|2|\r\n"


def ov2_record(longitude: int, latitude: int, name: bytes, record_type: int = 2) -> bytes:
    payload = struct.pack("<ii", longitude, latitude) + name + b"\0"
    return struct.pack("<BI", record_type, 5 + len(payload)) + payload


@pytest.fixture
def ov2_data():
    skipper = struct.pack("<BIiiii", 1, 21, 1063862, 4853893, 883208, 4853271)
    return (skipper
            + ov2_record(883208, 4853893, b"Stuttgart")
            + ov2_record(1063862, 4853271, b"Ulm"))
