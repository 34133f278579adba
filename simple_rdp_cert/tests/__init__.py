"""Unit tests and testing tools for the simple_rdp_cert package."""

TEST_IDENTITY = "host.example.ts.net"
TEST_DNS_NAME = f"{TEST_IDENTITY}."
TEST_OBJECT_PATH = r'\\HOST\root\cimv2\TerminalServices:Win32_TSGeneralSetting.TerminalName="RDP-tcp"'
TEST_SERVICE_ACCOUNT = "NT AUTHORITY\\NETWORK SERVICE"
TEST_STATUS = {
    "BackendState": "Running",
    "Self": {"HostName": "host", "DNSName": TEST_DNS_NAME, "Online": True},
}
