# scripts/distribute_warehouse_fee.py

import asyncio
from typing import Optional

import typer

from tradeerp.core.database import get_async_session_context
from tradeerp.core.exceptions import DomainError
from tradeerp.core.unit_of_work import SqlModelUnitOfWork
from tradeerp.services.warehouse_fee_distributor import WarehouseFeeDistributor

cli = typer.Typer()


async def run_distribution(year_month: str, total_fee: Optional[float]) -> int:
    async with get_async_session_context() as db:
        distributions = await WarehouseFeeDistributor(SqlModelUnitOfWork(db)).distribute(
            year_month, total_fee=total_fee
        )
    for row in distributions:
        typer.echo(
            f"  lot_id={row.lot_id} qty={row.quantity_at_time} days={row.storage_days} fee={row.distributed_fee}"
        )
    return len(distributions)


@cli.command()
def main(
    year_month: str = typer.Option(
        ..., '--year-month', '-m',
        prompt="배부할 월(YYYY-MM)을 입력하세요",
        help="보관료를 배부할 대상 월입니다."
    ),
    total_fee: Optional[float] = typer.Option(
        None, '--total-fee', '-t',
        help="배부 직전에 확정할 보관료 총액입니다. 생략하면 등록된 금액을 사용합니다."
    ),
):
    """
    월 창고 보관료를 창고에 잔량이 있는 로트에 배부합니다. 한 달에 한 번만 실행할 수 있습니다.
    """
    typer.echo(f"{year_month} 보관료 배부를 시작합니다...")
    try:
        lot_count = asyncio.run(run_distribution(year_month, total_fee))
    except DomainError as e:
        typer.echo(f"오류: {e.message}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"{lot_count}개 로트에 보관료가 배부되었습니다.")


if __name__ == "__main__":
    cli()
