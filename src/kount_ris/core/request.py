"""RIS request containers.

A request is an ordered mapping of RIS field names to string values plus the
declared mode and the close-on-finish flag. Typed setters on Inquiry and
Update convert Python values to the string form RIS expects.
"""

from __future__ import annotations

from typing import Optional, Union

from .models import (
    AuthorizationStatus,
    CartItem,
    RefundChargebackStatus,
    RequestMode,
)

RIS_VERSION = "0720"

# Field values never echoed by repr()
MASKED_FIELDS = frozenset({"PTOK"})


class Request:
    """Ordered, mutable RIS parameter container. No validation happens here."""

    def __init__(
        self,
        mode: Union[RequestMode, str] = RequestMode.INQUIRY,
        close_on_finish: bool = True,
        version: str = RIS_VERSION,
    ):
        self._params: dict[str, str] = {}
        self.close_on_finish = close_on_finish
        self.version = version
        self.mode = mode

    @property
    def mode(self) -> RequestMode:
        return self._mode

    @mode.setter
    def mode(self, value: Union[RequestMode, str]) -> None:
        self._mode = RequestMode(value)
        self._params["MODE"] = self._mode.value

    @property
    def version(self) -> str:
        return self._params.get("VERS", "")

    @version.setter
    def version(self, value: str) -> None:
        self.set("VERS", value)

    def get(self, name: str) -> Optional[str]:
        return self._params.get(name)

    def set(self, name: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"RIS field {name} must be a string, got {type(value).__name__}")
        if name == "MODE":
            # MODE on the wire always matches the mode the request is validated for
            self.mode = value
            return
        self._params[name] = value

    def remove(self, name: str) -> None:
        if name == "MODE":
            raise ValueError("MODE cannot be removed; assign Request.mode instead")
        self._params.pop(name, None)

    def get_params(self) -> dict[str, str]:
        """Return an ordered snapshot of the parameters."""
        return dict(self._params)

    def __contains__(self, name: object) -> bool:
        return name in self._params

    def __len__(self) -> int:
        return len(self._params)

    def __repr__(self) -> str:
        shown = {k: ("***" if k in MASKED_FIELDS else v) for k, v in self._params.items()}
        return f"{type(self).__name__}(mode={self._mode.value!r}, params={shown!r})"

    # Setters shared by inquiries and updates

    def set_merchant_id(self, merchant_id: int) -> None:
        self.set("MERC", str(merchant_id))

    def set_session_id(self, session_id: str) -> None:
        self.set("SESS", session_id)

    def set_order_number(self, order_number: str) -> None:
        self.set("ORDR", order_number)

    def set_payment(self, payment_type: str, token: Optional[str] = None) -> None:
        """Set the payment type code and, unless it is NONE, the payment token."""
        self.set("PTYP", payment_type)
        if token is None:
            self.remove("PTOK")
        else:
            self.set("PTOK", token)

    def set_authorization_status(self, status: Union[AuthorizationStatus, str]) -> None:
        self.set("AUTH", AuthorizationStatus(status).value)

    def set_mack(self, acknowledged: bool) -> None:
        self.set("MACK", "Y" if acknowledged else "N")


class Inquiry(Request):
    """A risk inquiry (modes Q, P, W, J)."""

    def __init__(
        self,
        mode: Union[RequestMode, str] = RequestMode.INQUIRY,
        close_on_finish: bool = True,
        version: str = RIS_VERSION,
    ):
        super().__init__(mode, close_on_finish, version)

    def set_website(self, site_id: str) -> None:
        self.set("SITE", site_id)

    def set_currency(self, currency: str) -> None:
        self.set("CURR", currency)

    def set_total(self, total: int) -> None:
        """Set the order total in the lowest currency unit (e.g. cents)."""
        self.set("TOTL", str(total))

    def set_ip_address(self, address: str) -> None:
        self.set("IPAD", address)

    def set_email(self, email: str) -> None:
        self.set("EMAL", email)

    def set_name(self, name: str) -> None:
        self.set("NAME", name)

    def set_unique_customer_id(self, customer_id: str) -> None:
        self.set("UNIQ", customer_id)

    def set_anid(self, anid: str) -> None:
        """Set the caller ANI for phone orders."""
        self.set("ANID", anid)

    def set_cart(self, items: list[CartItem]) -> None:
        """Replace the shopping cart with the given items."""
        for name in [k for k in self._params if k.startswith("PROD_")]:
            del self._params[name]
        for i, item in enumerate(items):
            self.set(f"PROD_TYPE[{i}]", item.product_type)
            self.set(f"PROD_ITEM[{i}]", item.name)
            self.set(f"PROD_DESC[{i}]", item.description)
            self.set(f"PROD_QUANT[{i}]", str(item.quantity))
            self.set(f"PROD_PRICE[{i}]", str(item.price))

    def set_user_defined_field(self, label: str, value: str) -> None:
        self.set(f"UDF[{label}]", value)


class Update(Request):
    """An update to a previous inquiry (modes U, X)."""

    def __init__(
        self,
        mode: Union[RequestMode, str] = RequestMode.UPDATE,
        close_on_finish: bool = True,
        version: str = RIS_VERSION,
    ):
        super().__init__(mode, close_on_finish, version)

    def set_transaction_id(self, transaction_id: str) -> None:
        self.set("TRAN", transaction_id)

    def set_refund_chargeback_status(self, status: Union[RefundChargebackStatus, str]) -> None:
        self.set("RFCB", RefundChargebackStatus(status).value)
