from __future__ import annotations

import unittest
from datetime import datetime
from decimal import Decimal
from unittest.mock import AsyncMock, patch

from fakes import FakeResult, FakeSession, FakeSessionFactory, compile_params, compile_sql, row

from app.services.dashboard_service import (
    get_channel_chart_data,
    get_dashboard_data,
    get_kpi_metrics,
    get_quick_insights,
    get_sales_chart_data,
    get_top_products_data,
)
from app.services.filter_service import ReportFilters

NOW = datetime(2024, 3, 15, 10, 0)


class KpiMetricsTests(unittest.IsolatedAsyncioTestCase):
    async def test_coerces_aggregates(self) -> None:
        db = FakeSession(
            FakeResult([row(revenue=Decimal('150.50'), orders=3, avg_ticket=Decimal('50.1666'), avg_seconds=Decimal('1530'))])
        )

        result = await get_kpi_metrics(db, ReportFilters(), now=NOW)

        self.assertEqual(
            result,
            {'faturamentoTotal': 150.5, 'totalPedidos': 3, 'ticketMedio': 50.1666, 'tempoMedio': 26},
        )
        sql = compile_sql(db.statements[0])
        self.assertIn('count(DISTINCT sales.id)', sql)
        self.assertIn('coalesce(sales.production_seconds', sql)

    async def test_empty_period_reports_zeros(self) -> None:
        db = FakeSession(FakeResult([row(revenue=None, orders=0, avg_ticket=None, avg_seconds=None)]))

        result = await get_kpi_metrics(db, ReportFilters(), now=NOW)

        self.assertEqual(result, {'faturamentoTotal': 0.0, 'totalPedidos': 0, 'ticketMedio': 0.0, 'tempoMedio': 0})


class SalesChartTests(unittest.IsolatedAsyncioTestCase):
    async def test_one_point_per_day(self) -> None:
        db = FakeSession(
            FakeResult(
                [
                    row(sale_day=datetime(2024, 3, 13), sales=Decimal('80.00'), orders=2),
                    row(sale_day=datetime(2024, 3, 14), sales=Decimal('45.50'), orders=1),
                ]
            )
        )

        result = await get_sales_chart_data(db, ReportFilters(), now=NOW)

        self.assertEqual(
            result,
            [
                {'date': '13/03', 'sales': 80.0, 'orders': 2},
                {'date': '14/03', 'sales': 45.5, 'orders': 1},
            ],
        )
        sql = compile_sql(db.statements[0])
        self.assertIn('date_trunc(', sql)
        self.assertIn('GROUP BY sale_day', sql)
        self.assertIn('ORDER BY sale_day ASC', sql)


class ChannelChartTests(unittest.IsolatedAsyncioTestCase):
    async def test_joins_channels_when_not_filtered(self) -> None:
        db = FakeSession(FakeResult([row(channel='iFood', sales=Decimal('300'), orders=4)]))

        result = await get_channel_chart_data(db, ReportFilters(), now=NOW)

        self.assertEqual(result, [{'channel': 'iFood', 'sales': 300.0, 'orders': 4}])
        sql = compile_sql(db.statements[0])
        self.assertEqual(sql.count('JOIN channels'), 1)
        self.assertIn('GROUP BY channels.name', sql)
        self.assertIn('ORDER BY sales DESC', sql)

    async def test_reuses_join_added_by_channel_filter(self) -> None:
        db = FakeSession(FakeResult([]))

        await get_channel_chart_data(db, ReportFilters(channel='iFood'), now=NOW)

        self.assertEqual(compile_sql(db.statements[0]).count('JOIN channels'), 1)


class TopProductsTests(unittest.IsolatedAsyncioTestCase):
    async def test_rows_carry_uncomputed_change(self) -> None:
        db = FakeSession(
            FakeResult([row(name='Classic Burger', category='Burgers', sales=Decimal('640.00'), quantity=Decimal('20'))])
        )

        result = await get_top_products_data(db, ReportFilters(), now=NOW)

        self.assertEqual(
            result,
            [{'name': 'Classic Burger', 'category': 'Burgers', 'sales': 640.0, 'quantity': 20, 'change': 0}],
        )

    async def test_filters_by_sale_id_containment(self) -> None:
        db = FakeSession(FakeResult([]))

        await get_top_products_data(db, ReportFilters(store='Centro'), now=NOW)

        stmt = db.statements[0]
        sql = compile_sql(stmt)
        self.assertIn('FROM product_sales JOIN sales ON product_sales.sale_id = sales.id', sql)
        self.assertIn('sales.id IN (SELECT sales.id FROM sales JOIN stores', sql)
        self.assertIn('GROUP BY products.name, categories.name', sql)
        self.assertIn('ORDER BY sales DESC', sql)
        self.assertIn(10, compile_params(stmt).values())


class QuickInsightsTests(unittest.IsolatedAsyncioTestCase):
    async def test_highlights(self) -> None:
        db = FakeSession(
            FakeResult([row(sale_hour=Decimal('20'), orders=12)]),
            FakeResult([row(sale_dow=Decimal('5'), sales=Decimal('1234.5'), orders=9)]),
            FakeResult([row(channel='iFood', sales=Decimal('2500'), orders=14)]),
        )

        result = await get_quick_insights(db, ReportFilters(), now=NOW)

        self.assertEqual(
            result,
            {
                'horarioPico': {'hora': '20h - 21h', 'pedidos': '12 pedidos'},
                'melhorDia': {'dia': 'Sexta', 'vendas': 'R$ 1.234,50', 'pedidos': '9 pedidos'},
                'canalDestaque': {'canal': 'iFood', 'vendas': 'R$ 2.500,00'},
            },
        )
        self.assertIn('EXTRACT(hour FROM', compile_sql(db.statements[0]))
        self.assertIn('EXTRACT(dow FROM', compile_sql(db.statements[1]))

    async def test_no_rows_defaults(self) -> None:
        db = FakeSession(FakeResult([]), FakeResult([]), FakeResult([]))

        result = await get_quick_insights(db, ReportFilters(), now=NOW)

        self.assertEqual(
            result,
            {
                'horarioPico': {'hora': '0h - 1h', 'pedidos': '0 pedidos'},
                'melhorDia': {'dia': 'N/A', 'vendas': 'R$ 0,00', 'pedidos': '0 pedidos'},
                'canalDestaque': {'canal': 'N/A', 'vendas': 'R$ 0,00'},
            },
        )


class DashboardAggregatorTests(unittest.IsolatedAsyncioTestCase):
    @patch('app.services.dashboard_service.get_quick_insights', new_callable=AsyncMock)
    @patch('app.services.dashboard_service.get_top_products_data', new_callable=AsyncMock)
    @patch('app.services.dashboard_service.get_channel_chart_data', new_callable=AsyncMock)
    @patch('app.services.dashboard_service.get_sales_chart_data', new_callable=AsyncMock)
    @patch('app.services.dashboard_service.get_kpi_metrics', new_callable=AsyncMock)
    async def test_merges_reports_with_one_session_each(
        self,
        kpis_mock,
        sales_chart_mock,
        channel_chart_mock,
        top_products_mock,
        insights_mock,
    ) -> None:
        kpis_mock.return_value = {'totalPedidos': 3}
        sales_chart_mock.return_value = [{'date': '13/03'}, {'date': '14/03'}]
        channel_chart_mock.return_value = [{'channel': 'iFood'}]
        top_products_mock.return_value = []
        insights_mock.return_value = {'horarioPico': {}}
        factory = FakeSessionFactory()
        filters = ReportFilters(channel='iFood')

        result = await get_dashboard_data(factory, filters)

        self.assertEqual(
            result,
            {
                'kpis': {'totalPedidos': 3},
                'salesChart': [{'date': '13/03'}, {'date': '14/03'}],
                'channelChart': [{'channel': 'iFood'}],
                'topProducts': [],
                'quickInsights': {'horarioPico': {}},
            },
        )
        self.assertEqual(factory.opened, 5)
        for report_mock in (kpis_mock, sales_chart_mock, channel_chart_mock, top_products_mock, insights_mock):
            report_mock.assert_awaited_once()
            self.assertEqual(report_mock.await_args.args[1], filters)
        sessions = {id(mock.await_args.args[0]) for mock in (kpis_mock, sales_chart_mock, insights_mock)}
        self.assertEqual(len(sessions), 3)

    @patch('app.services.dashboard_service.get_quick_insights', new_callable=AsyncMock)
    @patch('app.services.dashboard_service.get_top_products_data', new_callable=AsyncMock)
    @patch('app.services.dashboard_service.get_channel_chart_data', new_callable=AsyncMock)
    @patch('app.services.dashboard_service.get_sales_chart_data', new_callable=AsyncMock)
    @patch('app.services.dashboard_service.get_kpi_metrics', new_callable=AsyncMock)
    async def test_any_failure_fails_the_page(
        self,
        kpis_mock,
        sales_chart_mock,
        channel_chart_mock,
        top_products_mock,
        insights_mock,
    ) -> None:
        top_products_mock.side_effect = RuntimeError('relation "product_sales" does not exist')

        with self.assertRaises(RuntimeError):
            await get_dashboard_data(FakeSessionFactory(), ReportFilters())


if __name__ == '__main__':
    unittest.main()
