import logging
import os
from datetime import date, timedelta
from typing import Optional

import pandas as pd
import streamlit as st

from gantt_chart import MARGINS, TimelineChart
from timeline_drag import DragOperation
from timeline_tasks import JOB_COLUMNS, tasks_to_frame

DATA_DIR = "data"
JOBS_CSV = os.path.join(DATA_DIR, "jobs.csv")
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

JOB_BASE_COLUMNS = [*JOB_COLUMNS, "status"]
STATUS_LABELS = {
    "queued": "受付",
    "in_progress": "作業中",
    "on_hold": "保留",
    "done": "完了",
}

DEFAULT_CHART_WIDTH = 1100
ROW_HEIGHT = 40
MIN_CHART_HEIGHT = 360
PAN_STEP_PX = 200

OPERATION_LABELS = {
    "移動": DragOperation.MOVE,
    "開始日時を変更": DragOperation.RESIZE_START,
    "終了日時を変更": DragOperation.RESIZE_END,
}

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(format=LOG_FORMAT, level=logging.INFO)


def _sample_jobs() -> pd.DataFrame:
    today = date.today()

    def at(days: int, hour: int) -> str:
        return f"{today + timedelta(days=days):%Y-%m-%d}T{hour:02d}:00:00Z"

    return pd.DataFrame(
        [
            {
                "id": "J001",
                "job_number": "1001",
                "customer_name": "高田小学校 体育館",
                "job_start": at(-4, 8),
                "job_end": at(3, 17),
                "status": "in_progress",
            },
            {
                "id": "J002",
                "job_number": "1002",
                "customer_name": "熊本 橋脚下部工",
                "job_start": at(1, 9),
                "job_end": at(9, 18),
                "status": "queued",
            },
            {
                "id": "J003",
                "job_number": "1003",
                "customer_name": "博多駅前 店舗改装",
                "job_start": at(6, 8),
                "job_end": at(7, 12),
                "status": "queued",
            },
            {
                "id": "J004",
                "job_number": "1004",
                "customer_name": "北九州 倉庫 外構",
                "job_start": "",
                "job_end": "",
                "status": "on_hold",
            },
        ],
        columns=JOB_BASE_COLUMNS,
    )


def ensure_data_files() -> None:
    os.makedirs(DATA_DIR, exist_ok=True)
    if not os.path.exists(JOBS_CSV):
        _sample_jobs().to_csv(JOBS_CSV, index=False)


def load_jobs() -> pd.DataFrame:
    df = pd.read_csv(JOBS_CSV, dtype={"id": str, "job_number": str})
    for col in JOB_BASE_COLUMNS:
        if col not in df.columns:
            df[col] = ""
    for col in ("job_start", "job_end"):
        df[col] = df[col].astype(object)
    return df[JOB_BASE_COLUMNS]


def save_jobs(df: pd.DataFrame) -> None:
    out_df = df.reindex(columns=JOB_BASE_COLUMNS)
    out_df.to_csv(JOBS_CSV, index=False)


def update_job_time(job_id: str, start: pd.Timestamp, end: pd.Timestamp) -> None:
    """Reschedule callback: store the new times of ``job_id`` in the job file."""

    df = st.session_state["jobs"].copy()
    mask = df["id"] == job_id
    if not mask.any():
        st.session_state["flash"] = ("warning", f"案件 {job_id} が見つかりません。")
        return
    df.loc[mask, "job_start"] = start.isoformat()
    df.loc[mask, "job_end"] = end.isoformat()
    try:
        save_jobs(df)
    except Exception as exc:
        logger.exception("failed to save rescheduled job %s", job_id)
        st.session_state["flash"] = ("error", f"日程の保存に失敗しました: {exc}")
        return
    st.session_state["jobs"] = df
    logger.info("rescheduled %s: %s - %s", job_id, start, end)
    st.session_state["flash"] = (
        "success",
        f"案件 {job_id} の日程を {start:%m/%d %H:%M} 〜 {end:%m/%d %H:%M} に変更しました。",
    )


def safe_str(value, default: str = "-") -> str:
    if value is None or pd.isna(value):
        return default
    if isinstance(value, str) and value.strip() == "":
        return default
    return str(value)


def select_job(job_id: str) -> None:
    st.session_state["selected_job"] = job_id


def chart_height(task_count: int) -> int:
    return max(MIN_CHART_HEIGHT, ROW_HEIGHT * task_count + MARGINS.top + MARGINS.bottom)


def get_chart() -> TimelineChart:
    if "timeline_chart" not in st.session_state:
        st.session_state["timeline_chart"] = TimelineChart(
            width=DEFAULT_CHART_WIDTH,
            height=MIN_CHART_HEIGHT,
            on_reschedule=update_job_time,
            on_select=select_job,
        )
    return st.session_state["timeline_chart"]


def replay_drag(chart: TimelineChart, job_id: str, operation: DragOperation, hours: float) -> bool:
    """Feed a press-move-release gesture for ``job_id`` through the chart input."""

    frame = chart.frame()
    bar = next((b for b in frame.bars if b.task_id == job_id), None)
    if bar is None:
        return False
    x = {
        DragOperation.MOVE: bar.x + bar.width / 2,
        DragOperation.RESIZE_START: bar.x,
        DragOperation.RESIZE_END: bar.x_end,
    }[operation]
    y = bar.y + bar.height / 2
    scale = chart.viewport.scale()
    delta_px = pd.Timedelta(hours=hours).value / scale.ns_per_pixel if scale.ns_per_pixel else 0.0
    if not chart.pointer_down(x, y):
        return False
    chart.pointer_move(x + delta_px, y)
    chart.pointer_up(x + delta_px, y)
    return True


def replay_click(chart: TimelineChart, job_id: str) -> None:
    frame = chart.frame()
    bar = next((b for b in frame.bars if b.task_id == job_id), None)
    if bar is None:
        return
    x, y = bar.x + bar.width / 2, bar.y + bar.height / 2
    if chart.pointer_down(x, y):
        chart.pointer_up(x, y)


def render_view_controls(chart: TimelineChart) -> None:
    st.markdown("### 表示操作")
    width = st.slider("表示幅 (px)", 600, 1800, int(chart.width), step=50)
    chart.resize(width, chart_height(len(chart.tasks)))

    col_in, col_out = st.columns(2)
    if col_in.button("＋ 拡大", use_container_width=True):
        chart.zoom_in()
    if col_out.button("－ 縮小", use_container_width=True):
        chart.zoom_out()
    col_left, col_right = st.columns(2)
    if col_left.button("◀ 前へ", use_container_width=True):
        chart.pan(PAN_STEP_PX)
    if col_right.button("次へ ▶", use_container_width=True):
        chart.pan(-PAN_STEP_PX)
    if st.button("全体を表示", use_container_width=True):
        chart.reset()
    st.caption(
        f"表示範囲: {chart.viewport.domain_start:%Y-%m-%d %H:%M} 〜 "
        f"{chart.viewport.domain_end:%Y-%m-%d %H:%M} (UTC)"
    )


def render_reschedule_panel(chart: TimelineChart) -> None:
    st.markdown("### 日程の変更")
    tasks = chart.tasks
    if not tasks:
        st.info("日程が設定された案件がありません。")
        return
    labels = {task.label: task.id for task in tasks}
    with st.form("reschedule_form"):
        label = st.selectbox("案件", list(labels.keys()))
        operation_label = st.radio("操作", list(OPERATION_LABELS.keys()), horizontal=True)
        hours = st.number_input("ずらす時間 (時間)", value=24.0, step=1.0)
        submitted = st.form_submit_button("適用")
    if submitted:
        if not replay_drag(chart, labels[label], OPERATION_LABELS[operation_label], hours):
            st.warning("この案件は現在の表示では操作できません。表示範囲を調整してください。")


def _selected_from_event(event) -> Optional[str]:
    selection = getattr(event, "selection", None) or {}
    points = selection.get("points", []) if isinstance(selection, dict) else getattr(selection, "points", [])
    for point in points or []:
        customdata = point.get("customdata")
        if isinstance(customdata, (list, tuple)):
            customdata = customdata[0] if customdata else None
        if customdata:
            return str(customdata)
    return None


def render_selected_job(jobs: pd.DataFrame) -> None:
    job_id = st.session_state.get("selected_job")
    if not job_id:
        return
    match = jobs.loc[jobs["id"] == job_id]
    if match.empty:
        return
    row = match.iloc[0]
    st.markdown("### 選択中の案件")
    status = safe_str(row.get("status"))
    cols = st.columns(4)
    cols[0].metric("案件番号", safe_str(row.get("job_number")))
    cols[1].metric("顧客", safe_str(row.get("customer_name")))
    cols[2].metric("ステータス", STATUS_LABELS.get(status, status))
    cols[3].metric("期間", f"{safe_str(row.get('job_start'))[:10]} 〜 {safe_str(row.get('job_end'))[:10]}")


def main() -> None:
    st.set_page_config(page_title="案件タイムライン", layout="wide")
    configure_logging()
    ensure_data_files()

    if "jobs" not in st.session_state:
        try:
            st.session_state["jobs"] = load_jobs()
        except Exception as exc:
            st.error(f"データの読み込みに失敗しました: {exc}")
            return

    chart = get_chart()
    chart.set_jobs(st.session_state["jobs"])

    st.title("案件タイムライン")
    with st.sidebar:
        render_view_controls(chart)
        render_reschedule_panel(chart)

    flash = st.session_state.pop("flash", None)
    if flash:
        kind, message = flash
        getattr(st, kind)(message)

    # Callbacks may have changed the jobs; re-project before drawing.
    chart.set_jobs(st.session_state["jobs"])
    if not chart.tasks:
        st.info("表示できる案件がありません。着手日・完了日を設定してください。")
    event = st.plotly_chart(
        chart.figure(),
        use_container_width=False,
        key="timeline_plot",
        on_select="rerun",
        selection_mode="points",
    )
    selected = _selected_from_event(event)
    if selected and selected != st.session_state.get("selected_job"):
        replay_click(chart, selected)

    render_selected_job(st.session_state["jobs"])
    with st.expander("案件データ", expanded=False):
        st.dataframe(st.session_state["jobs"], use_container_width=True)
    with st.expander("表示中のタスク", expanded=False):
        st.dataframe(tasks_to_frame(chart.tasks), use_container_width=True)


if __name__ == "__main__":
    main()
