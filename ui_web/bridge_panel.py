"""
Operator panel for the cashier machine.

    streamlit run ui_web/bridge_panel.py

Talks to the bridge through PrintBridgeClient (or the in-process bridge when
PRINT_BRIDGE_MODE=local), the same facade the POS front end uses.
"""
import os

import streamlit as st

from bridge import env
from bridge.client import LocalPrintBridge, PrintBridgeClient


@st.cache_resource
def get_bridge(base_url: str, token: str):
    if os.getenv("PRINT_BRIDGE_MODE") == "local":
        from bridge.printers import get_dispatcher
        from bridge.service import PrintService
        return LocalPrintBridge(PrintService(get_dispatcher()))
    return PrintBridgeClient(base_url=base_url, token=token or None)


def _show_result(res, ok_message: str):
    if res.success:
        st.success(ok_message)
    else:
        st.error(f"Print failed: {res.error}. Use the browser print instead.")


def show_status(bridge) -> bool:
    status = bridge.check_status()
    if not status.is_available:
        st.error("Print bridge not reachable on this machine.")
        st.caption("Start it with `print-bridge` and keep the window open while selling.")
        return False
    st.success(f"Print bridge {status.version} connected")
    if status.printer_config and status.printer_config.printer_name:
        st.caption(f"Bridge printer: {status.printer_config.printer_name}")
    return True


def show_printers_panel(bridge):
    st.markdown("### Printers")

    if st.button("🔄 Refresh", key="bridge_refresh_btn"):
        bridge.invalidate()

    printers = bridge.get_printers()
    if not printers:
        st.info("No printers found on this machine.")
        return None

    names = [p.name for p in printers]
    default_selected = (
        st.session_state.get("selected_printer_name")
        or next((p.name for p in printers if p.is_default), None)
        or names[0]
    )
    if default_selected not in names:
        default_selected = names[0]

    selected = st.selectbox("Receipt printer", names, index=names.index(default_selected), key="bridge_printer_select")
    if selected != st.session_state.get("selected_printer_name"):
        st.session_state["selected_printer_name"] = selected
        bridge.configure_printer(selected)

    p = next(x for x in printers if x.name == selected)
    st.json(p.to_wire())
    return selected


def show_actions(bridge, printer: str):
    st.markdown("### Test")
    col_left, col_right = st.columns(2)
    with col_left:
        if st.button("🖨️ Test receipt", key="bridge_test_btn"):
            _show_result(bridge.test_print(printer), "Test receipt sent")
    with col_right:
        if st.button("💵 Open cash drawer", key="bridge_drawer_btn"):
            _show_result(bridge.open_cash_drawer(printer), "Drawer opened")

    text = st.text_area("Plain text", value="Hello from the print bridge", key="bridge_text")
    if st.button("Print text", key="bridge_text_btn"):
        _show_result(bridge.print_text(text, printer), "Text sent")


def main():
    st.set_page_config(page_title="Print Bridge", page_icon="🖨️")
    st.markdown("## Print Bridge")
    bridge = get_bridge(env.PRINT_BRIDGE_URL, env.PRINT_BRIDGE_TOKEN)
    if not show_status(bridge):
        return
    printer = show_printers_panel(bridge)
    if printer:
        show_actions(bridge, printer)


main()
