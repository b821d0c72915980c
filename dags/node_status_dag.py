from airflow import DAG
from airflow.operators.python import PythonOperator
from datetime import datetime, timedelta
import asyncio
import os
import sys

# Add the project root directory to the Python path
# In Airflow container, DAGs are in /opt/airflow/dags/
current_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(current_dir)  # Go up from dags/ to project root
sys.path.insert(0, project_root)

from node_monitor.collectors.status_collector import run_once

default_args = {
    'owner': 'airflow',
    'depends_on_past': False,
    'start_date': datetime(2024, 1, 1),
    'email_on_failure': False,
    'email_on_retry': False,
    'retries': 0,
}

def run_node_status_check():
    report = asyncio.run(run_once())
    if report is None:
        raise RuntimeError("Node monitor is not configured")
    print(f"DAG: checked {report.checked} nodes, skipped {report.skipped}, "
          f"{report.alerts_sent} alerts sent, {report.errors} errors")

dag = DAG(
    'node_status_dag',
    default_args=default_args,
    description='Reconcile Tailscale node liveness and send Telegram alerts',
    schedule='*/5 * * * *',
    catchup=False,
    dagrun_timeout=timedelta(minutes=4),
)

node_status_task = PythonOperator(
    task_id='node_status_task',
    python_callable=run_node_status_check,
    dag=dag,
)
