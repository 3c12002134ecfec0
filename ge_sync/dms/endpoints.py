from __future__ import annotations

from dataclasses import dataclass

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,application/json;q=0.8,*/*;q=0.7",
    "Accept-Language": "en-US,en;q=0.9",
}

FORM_HEADERS = {"Content-Type": "application/x-www-form-urlencoded; charset=UTF-8"}
XHR_HEADERS = {"X-Requested-With": "XMLHttpRequest"}


@dataclass(frozen=True)
class DmsEndpoints:
    base_url: str

    def _url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}{path}"

    @property
    def order_data(self) -> str:
        return self._url("/dms/orderdata")

    @property
    def order_data_json(self) -> str:
        return self._url("/dms/orderdata/downloadjson")

    @property
    def track_trace_detail(self) -> str:
        return self._url("/dms/tracktrace/trackDetailMain")

    @property
    def inbound(self) -> str:
        return self._url("/dms/inbound")

    @property
    def inbound_summary(self) -> str:
        return self._url("/dms/inbound/inboundSummary")

    @property
    def inbound_history(self) -> str:
        return self._url("/dms/inbound/inboundHistory")

    @property
    def receiving_report(self) -> str:
        return self._url("/dms/inbound/receivingReportPdf")

    @property
    def inbound_asn(self) -> str:
        return self._url("/dms/inbound/inboundAsn")

    @property
    def inbound_asn_search(self) -> str:
        return self._url("/dms/inbound/inboundAsnSearch")


    @property
    def asis(self) -> str:
        return self._url("/dms/newasis")


@dataclass(frozen=True)
class AsisEndpoints:
    base_url: str

    def document(self, name: str) -> str:
        return f"{self.base_url.rstrip('/')}/{name.lstrip('/')}"

    @property
    def inventory(self) -> str:
        return self.document("ASIS.json")

    @property
    def load_data(self) -> str:
        return self.document("ASISLoadData.json")

    @property
    def report_history(self) -> str:
        return self.document("ASISReportHistoryData.json")

    def report_history_items(self, load_number: str) -> str:
        return self.document(f"ASISReportHistoryData/{load_number}.json")

    def load_data_items(self, load_number: str) -> str:
        return self.document(f"ASISLoadData/{load_number}.json")
