from contextlib import closing
from datetime import date

import streamlit as st

from api_client import KEEP_ALIVE, ApiError, FleetApiClient
from flows import COMPLETED_FLASH, PENDING_COMPLETED, confirm_pending_completed

STATUS_OPTIONS = ["Ativo", "Em Manutenção", "Inativo"]
STATUS_COLORS = {"Ativo": "#22c55e", "Em Manutenção": "#f59e0b", "Inativo": "#ef4444"}

st.set_page_config(page_title="Gestão de Frota", page_icon="🚗", layout="wide")


@st.cache_resource
def get_client() -> FleetApiClient:
    return FleetApiClient()


client = get_client()


def brl(value: float) -> str:
    formatted = f"{value:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return f"R$ {formatted}"


def km(value) -> str:
    return f"{value:,}".replace(",", ".") + " km" if value is not None else "-"


def show_api_error(error: ApiError, fallback: str = ""):
    if not error.field_errors:
        st.error(error.message or fallback)
    for field, message in error.field_errors.items():
        st.error(f"{field}: {message}")


def vehicle_label(vehicle: dict) -> str:
    return f"{vehicle['vehicle_number']} - {vehicle['license_plate']}"


# ---------------------------------------
# Pages
# ---------------------------------------
def live_view(path: str, render):
    """
    Subscribes to an SSE projection and re-renders ``render(payload)`` into one
    placeholder for every frame. The subscription is released when Streamlit
    stops this run (page change or rerun).
    """
    placeholder = st.empty()
    last = None
    with closing(client.stream(path)) as frames:
        for frame in frames:
            if frame.event != KEEP_ALIVE:
                last = frame.data
            if last is None:
                continue
            # Redrawn on keep-alives too, so a pending rerun is picked up
            with placeholder.container():
                render(last)


def dashboard_page():
    st.title("📊 Dashboard")
    live_view("/dashboard/stream", render_dashboard)


def render_dashboard(stats: dict):
    c1, c2, c3 = st.columns(3)
    c1.metric("Total de Veículos", stats["total_vehicles"])
    c2.metric("KM Total (Ativos)", km(stats["total_km"]))
    c3.metric("Custo (Último Mês)", brl(stats["maintenance_cost"]))

    left, right = st.columns(2)
    with left:
        st.subheader("Manutenções por tipo")
        by_type = {item["type"]: item["count"] for item in stats["maintenances_by_type"]}
        if by_type:
            st.bar_chart(by_type)
        else:
            st.caption("Nenhuma manutenção concluída nos últimos 30 dias")
    with right:
        st.subheader("Veículos por status")
        for item in stats["vehicles_by_status"]:
            color = STATUS_COLORS.get(item["status"], "#6b7280")
            st.markdown(f"<span style='color:{color}'>●</span> {item['status']}: **{item['count']}**",
                        unsafe_allow_html=True)


def vehicles_page():
    st.title("🚗 Veículos")
    search = st.text_input("Buscar por número, placa, marca ou modelo")

    with st.expander("Adicionar Novo Veículo"):
        with st.form("vehicle_form", clear_on_submit=True):
            vehicle_number = st.text_input("Número do Veículo (ID)", placeholder="Ex: V001")
            license_plate = st.text_input("Placa", placeholder="Ex: ABC-1234")
            brand = st.text_input("Marca", placeholder="Ex: Fiat")
            model = st.text_input("Modelo", placeholder="Ex: Uno")
            year = st.number_input("Ano", min_value=1900, max_value=date.today().year + 1, value=date.today().year)
            km_current = st.number_input("KM Inicial", min_value=0, value=0, step=1)
            status = st.selectbox("Status", STATUS_OPTIONS)
            if st.form_submit_button("Cadastrar"):
                try:
                    client.create_vehicle({
                        "vehicle_number": vehicle_number,
                        "license_plate": license_plate,
                        "brand": brand,
                        "model": model,
                        "year": int(year),
                        "km_current": int(km_current),
                        "status": status,
                    })
                    st.success("Veículo cadastrado com sucesso!")
                except ApiError as e:
                    show_api_error(e)

    vehicles = client.list_vehicles(search=search or None)
    if not vehicles:
        st.info("Nenhum veículo encontrado")
        return

    for vehicle in vehicles:
        with st.expander(f"{vehicle_label(vehicle)} · {vehicle['brand']} {vehicle['model']} · {vehicle['status']}"):
            detail = client.get_vehicle(vehicle["id"])
            st.write(f"**Ano:** {vehicle['year']}  |  **KM Atual:** {km(vehicle['km_current'])}")

            new_status = st.selectbox("Status", STATUS_OPTIONS, index=STATUS_OPTIONS.index(vehicle["status"]),
                                      key=f"status-{vehicle['id']}")
            if new_status != vehicle["status"] and st.button("Salvar status", key=f"save-{vehicle['id']}"):
                client.update_vehicle_status(vehicle["id"], new_status)
                st.rerun()

            st.markdown("**Histórico de Manutenções**")
            if not detail["maintenances"]:
                st.caption("Nenhuma manutenção registrada")
            for m in detail["maintenances"]:
                maintenance_card(m)


def maintenance_card(m: dict):
    lines = [f"**{m['service_type']}** · {m['status']}"]
    if m.get("vehicle"):
        lines.append(vehicle_label(m["vehicle"]))
    if m["status"] == "Concluído":
        if m.get("service_date"):
            lines.append(f"Data: {date.fromisoformat(m['service_date']):%d/%m/%Y}")
        if m.get("km_at_service") is not None:
            lines.append(f"KM: {km(m['km_at_service'])}")
        if m.get("cost") is not None:
            lines.append(f"Custo: {brl(m['cost'])}")
        if m.get("attachment_url"):
            lines.append(f"[Anexo]({m['attachment_url']})")
    else:
        if m.get("scheduled_date"):
            lines.append(f"Previsto: {date.fromisoformat(m['scheduled_date']):%d/%m/%Y}")
        if m.get("scheduled_km") is not None:
            lines.append(f"Previsto: {km(m['scheduled_km'])}")
    if m.get("description"):
        lines.append(m["description"])
    st.markdown("  \n".join(lines))
    st.divider()


def maintenances_page():
    st.title("🔧 Manutenções")
    vehicles = client.list_vehicles()
    options = {vehicle_label(v): v["id"] for v in vehicles}

    with st.expander("Registrar Manutenção"):
        completed_tab, scheduled_tab = st.tabs(["Concluído", "Agendar"])
        with completed_tab:
            completed_form(options)
        with scheduled_tab:
            scheduled_form(options)

    done_tab, upcoming_tab = st.tabs(["Concluídas", "Agendadas"])
    with done_tab:
        for m in client.list_maintenances(status="Concluído"):
            maintenance_card(m)
    with upcoming_tab:
        for m in client.list_maintenances(status="Agendado"):
            maintenance_card(m)


def completed_form(options: dict):
    flash = st.session_state.pop(COMPLETED_FLASH, None)
    if flash:
        kind, text = flash
        if kind == "success":
            st.success(text)
        else:
            st.error(text)

    pending = st.session_state.get(PENDING_COMPLETED)
    if pending:
        st.warning(
            f"Atenção: Quilometragem Retroativa. {pending['message']} Tem certeza que deseja continuar?"
        )
        confirm, cancel = st.columns(2)
        if confirm.button("Sim, Continuar"):
            confirm_pending_completed(client, st.session_state)
            st.rerun()
        if cancel.button("Cancelar"):
            st.session_state.pop(PENDING_COMPLETED, None)
            st.rerun()
        return

    with st.form("completed_form"):
        label = st.selectbox("Veículo", list(options), index=None, placeholder="Selecione o veículo")
        service_type = st.text_input("Tipo de Serviço", placeholder="Ex: Troca de Óleo")
        service_date = st.date_input("Data", value=None, max_value=date.today())
        km_at_service = st.number_input("KM", min_value=0, value=None, step=1)
        cost = st.number_input("Custo (R$)", min_value=0.0, value=None, step=0.01)
        description = st.text_area("Descrição", placeholder="Detalhes do serviço...")
        attachment_url = st.text_input("Link do Anexo/Nota", placeholder="https://...")
        if st.form_submit_button("Registrar"):
            data = {
                "vehicle_id": options.get(label, ""),
                "service_type": service_type,
                "service_date": service_date.isoformat() if service_date else None,
                "km_at_service": int(km_at_service) if km_at_service is not None else None,
                "cost": cost,
                "description": description,
                "attachment_url": attachment_url,
            }
            try:
                client.register_completed(data)
                st.success("Manutenção registrada com sucesso!")
            except ApiError as e:
                if e.confirmation_required:
                    st.session_state[PENDING_COMPLETED] = {"data": data, "message": e.message}
                    st.rerun()
                else:
                    show_api_error(e, "Erro ao registrar manutenção")


def scheduled_form(options: dict):
    with st.form("scheduled_form"):
        label = st.selectbox("Veículo", list(options), index=None, placeholder="Selecione o veículo")
        service_type = st.text_input("Tipo de Serviço", placeholder="Ex: Revisão")
        scheduled_date = st.date_input("Data Prevista", value=None)
        scheduled_km = st.number_input("KM Prevista", min_value=0, value=None, step=1)
        description = st.text_area("Descrição", placeholder="Observações sobre o agendamento...")
        if st.form_submit_button("Agendar"):
            try:
                client.schedule_maintenance({
                    "vehicle_id": options.get(label, ""),
                    "service_type": service_type,
                    "scheduled_date": scheduled_date.isoformat() if scheduled_date else None,
                    "scheduled_km": int(scheduled_km) if scheduled_km is not None else None,
                    "description": description,
                })
                st.success("Manutenção agendada com sucesso!")
            except ApiError as e:
                show_api_error(e, "Erro ao agendar manutenção")


def notifications_page():
    st.title("🔔 Notificações")
    st.caption("Manutenções próximas")
    live_view("/notifications/stream", render_alerts)


def render_alerts(alerts: list):
    if not alerts:
        st.info("Nenhuma notificação no momento")
    for alert in alerts:
        icon = "📅" if alert["kind"] == "date" else "⏱️"
        st.warning(f"{icon} **{alert['vehicle_number']} - {alert['license_plate']}** · "
                   f"{alert['service_type']}  \n{alert['message']}")


def chat_page():
    st.title("💬 Assistente da Frota")
    history = st.session_state.setdefault("chat_history", [])
    for role, content in history:
        st.chat_message(role).write(content)

    prompt = st.chat_input("Pergunte sobre a frota ou digite ATUALIZAR KM [PLACA/NÚMERO] [NOVA_KM]")
    if prompt:
        history.append(("user", prompt))
        st.chat_message("user").write(prompt)
        try:
            reply = client.chat(prompt)
        except ApiError as e:
            reply = f"❌ {e.message}"
        history.append(("assistant", reply))
        st.chat_message("assistant").write(reply)


PAGES = {
    "Dashboard": dashboard_page,
    "Veículos": vehicles_page,
    "Manutenções": maintenances_page,
    "Notificações": notifications_page,
    "Chat": chat_page,
}

page = st.sidebar.radio("Navegação", list(PAGES))
try:
    PAGES[page]()
except ApiError as e:
    st.error(e.message)
