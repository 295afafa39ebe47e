import pytest

CAP12_ALERT = """<?xml version="1.0" encoding="UTF-8"?>
<alert xmlns="urn:oasis:names:tc:emergency:cap:1.2">
  <identifier>43b080713727</identifier>
  <sender>hsas@dhs.gov</sender>
  <sent>2003-04-02T14:39:01-05:00</sent>
  <status>Actual</status>
  <msgType>Alert</msgType>
  <scope>Public</scope>
  <references>hsas@dhs.gov,43b080713726,2003-04-01T14:39:01-05:00</references>
  <info>
    <language>en-US</language>
    <category>Security</category>
    <event>Homeland Security Advisory System Update</event>
    <responseType>Shelter</responseType>
    <urgency>Immediate</urgency>
    <severity>Severe</severity>
    <certainty>Likely</certainty>
    <eventCode>
      <valueName>SAME</valueName>
      <value>CEM</value>
    </eventCode>
    <effective>2003-04-02T14:39:01-05:00</effective>
    <senderName>U.S. Government, Department of Homeland Security</senderName>
    <headline>Homeland Security Sets Code ORANGE</headline>
    <description>The Department of Homeland Security has elevated the threat level.</description>
    <web>http://www.dhs.gov/dhspublic/display?theme=29</web>
    <parameter>
      <valueName>HSAS</valueName>
      <value>ORANGE</value>
    </parameter>
    <resource>
      <resourceDesc>Image file (GIF)</resourceDesc>
      <mimeType>image/gif</mimeType>
      <size>2048</size>
      <uri>http://www.dhs.gov/dhspublic/getAdvisoryImage</uri>
    </resource>
    <area>
      <areaDesc>U.S. nationwide and interests worldwide</areaDesc>
      <polygon>38.47,-120.14 38.34,-119.95 38.52,-119.74 38.62,-119.89 38.47,-120.14</polygon>
      <circle>32.9525,-115.5527 0</circle>
      <geocode>
        <valueName>FIPS6</valueName>
        <value>006113</value>
      </geocode>
      <altitude>100</altitude>
      <ceiling>200.5</ceiling>
    </area>
  </info>
</alert>
"""

CAP11_ALERT = """<alert xmlns="urn:oasis:names:tc:emergency:cap:1.1">
  <identifier>KSTO1055887203</identifier>
  <sender>KSTO@NWS.NOAA.GOV</sender>
  <sent>2003-06-17T14:57:00-07:00</sent>
  <status>Actual</status>
  <msgType>Alert</msgType>
  <scope>Public</scope>
  <info>
    <category>Met</category>
    <event>SEVERE THUNDERSTORM</event>
    <urgency>Immediate</urgency>
    <severity>Severe</severity>
    <certainty>Observed</certainty>
    <area>
      <areaDesc>EXTREME NORTH CENTRAL TUOLUMNE COUNTY IN CALIFORNIA</areaDesc>
      <polygon>38.47,-120.14 38.34,-119.95 38.52,-119.74 38.62,-119.89 38.47,-120.14</polygon>
    </area>
  </info>
</alert>
"""

CAP10_ALERT = """<alert xmlns="http://www.incident.com/cap/1.0">
  <identifier>TRI13970876.1</identifier>
  <sender>trinet@caltech.edu</sender>
  <password>secret</password>
  <sent>2003-06-11T20:56:00-07:00</sent>
  <status>Actual</status>
  <msgType>Update</msgType>
  <references>TRI13970876/trinet@caltech.edu</references>
  <info>
    <category>Geo</category>
    <event>Earthquake</event>
    <urgency>Past</urgency>
    <severity>Minor</severity>
    <certainty>Very Likely</certainty>
    <eventCode>SAME=EQW</eventCode>
    <parameter>EVENTID=13970876</parameter>
    <area>
      <areaDesc>1 mi. WSW of San Ardo, CA</areaDesc>
      <circle>36.0194,-120.9083 0</circle>
    </area>
  </info>
</alert>
"""


def cap12(body: str, **fields: str) -> str:
    """Minimal valid CAP 1.2 alert with ``body`` appended after <scope>."""
    header = {
        "identifier": "id-1",
        "sender": "sender@example.com",
        "sent": "2024-01-02T03:04:05+00:00",
        "status": "Actual",
        "msgType": "Alert",
        "scope": "Public",
    }
    header.update(fields)
    elements = "".join(f"<{name}>{value}</{name}>" for name, value in header.items() if value)
    return f'<alert xmlns="urn:oasis:names:tc:emergency:cap:1.2">{elements}{body}</alert>'


def info12(body: str = "") -> str:
    return (
        "<info><category>Met</category><event>Storm</event><urgency>Expected</urgency>"
        f"<severity>Minor</severity><certainty>Likely</certainty>{body}</info>"
    )


@pytest.fixture
def cap12_alert() -> str:
    return CAP12_ALERT


@pytest.fixture
def cap11_alert() -> str:
    return CAP11_ALERT


@pytest.fixture
def cap10_alert() -> str:
    return CAP10_ALERT
