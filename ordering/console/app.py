import time

import pandas as pd
import streamlit as st

from ordering.config import get_config
from ordering.core.analytics import compute_business_analytics, export_orders_csv
from ordering.core.errors import OrderingError
from ordering.core.order_service import OrderService
from ordering.core.state_machine import allowed_targets, next_status
from ordering.data.models import Actor, OrderFilters, OrderStatus

st.set_page_config(page_title="Kitchen & Business Console", layout="wide")

# -----------------------------------------------------------------------------
# Service wiring (backend chosen by PERSISTENCE_BACKEND, once per session)
# -----------------------------------------------------------------------------
config = get_config()


@st.cache_resource
def _service() -> OrderService:
    return OrderService.from_config()


service = _service()

NEXT_LABELS = {
    OrderStatus.PENDING: "Start Preparing",
    OrderStatus.PREPARING: "Mark Ready",
    OrderStatus.READY: "Complete",
}

kitchen_tab, history_tab, analytics_tab = st.tabs(["Kitchen", "History", "Analytics"])

# -----------------------------------------------------------------------------
# Kitchen display
# -----------------------------------------------------------------------------
with kitchen_tab:
    queue = service.kitchen_queue()
    st.markdown(f"### Active orders ({len(queue)})")
    if not queue:
        st.info("No active orders.")

    for order in queue:
        waited = int((pd.Timestamp.now(tz="UTC") - pd.Timestamp(order.created_at)).total_seconds() // 60)
        with st.container(border=True):
            st.markdown(
                f"**#{order.order_id}** {order.customer.name} · {order.order_type.value} · "
                f"`{order.status.value.upper()}` · {waited} min"
            )
            for item in order.items:
                st.write(f"{item.quantity} × {item.name}")
            if order.notes:
                st.caption(order.notes)

            advance, cancel = st.columns(2)
            target = next_status(order.status)
            if target and advance.button(NEXT_LABELS[order.status], key=f"advance-{order.order_id}"):
                try:
                    service.update_status(order.order_id, target, Actor.KITCHEN)
                except OrderingError as exc:
                    st.error(exc.user_message)
                else:
                    st.rerun()
            if cancel.button("Cancel", key=f"cancel-{order.order_id}"):
                try:
                    service.update_status(order.order_id, OrderStatus.CANCELLED, Actor.KITCHEN)
                except OrderingError as exc:
                    st.error(exc.user_message)
                else:
                    st.rerun()

# -----------------------------------------------------------------------------
# Order history
# -----------------------------------------------------------------------------
with history_tab:
    f1, f2, f3 = st.columns([1, 2, 1])
    status_choice = f1.selectbox("Status", ["all"] + [s.value for s in OrderStatus])
    customer = f2.text_input("Customer name")
    f3.download_button(
        "Export last 30 days",
        export_orders_csv(service.list_orders()),
        file_name="orders-export.csv",
        mime="text/csv",
    )

    filters = OrderFilters(
        status=None if status_choice == "all" else status_choice,
        customer_name=customer.strip() or None,
    )
    history = service.list_orders(filters)
    st.markdown(f"### Orders ({len(history)})")
    if not history:
        st.info("No orders match these filters.")

    status_order = list(OrderStatus)
    for order in history:
        with st.container(border=True):
            st.markdown(
                f"**#{order.order_id}** {order.customer.name} · {order.order_type.value} · "
                f"`{order.status.value.upper()}` · ${order.total_price:,.2f} · "
                f"{pd.Timestamp(order.created_at):%Y-%m-%d %H:%M}"
            )
            st.caption(", ".join(f"{i.quantity} × {i.name}" for i in order.items))

            targets = sorted(allowed_targets(order.status, Actor.BUSINESS), key=status_order.index)
            for col, target in zip(st.columns(max(len(targets), 1)), targets):
                if col.button(target.value.title(), key=f"history-{order.order_id}-{target.value}"):
                    try:
                        service.update_status(order.order_id, target, Actor.BUSINESS)
                    except OrderingError as exc:
                        st.error(exc.user_message)
                    else:
                        st.rerun()

# -----------------------------------------------------------------------------
# Business analytics
# -----------------------------------------------------------------------------
with analytics_tab:
    t0 = time.perf_counter()
    stats = compute_business_analytics(service.list_orders(), top_n=config.top_items_limit)
    t_stats = (time.perf_counter() - t0) * 1000.0

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Orders", f"{stats.total_orders:,}")
    c2.metric("Revenue", f"${stats.total_revenue:,.2f}")
    c3.metric("Average order", f"${stats.average_order_value:,.2f}")
    c4.metric("Today", f"{stats.orders_today} / ${stats.revenue_today:,.2f}")

    st.markdown("### Revenue by day (last 7 days)")
    if stats.revenue_by_day:
        daily = pd.DataFrame([r.model_dump() for r in stats.revenue_by_day]).astype({"amount": float})
        st.bar_chart(daily, x="day", y="amount")

    st.markdown("### Top sellers")
    if stats.top_items:
        st.dataframe(pd.DataFrame([r.model_dump() for r in stats.top_items]), use_container_width=True)

    st.markdown("### Orders by status")
    st.write(stats.orders_by_status)

    st.markdown("### Peak hours (last 30 days)")
    if stats.peak_hours:
        st.bar_chart(pd.DataFrame([r.model_dump() for r in stats.peak_hours]), x="hour", y="orders")

    with st.expander("Query timings (ms)"):
        st.write({"compute_business_analytics": round(t_stats, 2)})

# -----------------------------------------------------------------------------
# Polling refresh (display cadence only)
# -----------------------------------------------------------------------------
time.sleep(config.kitchen_refresh_seconds)
st.rerun()
