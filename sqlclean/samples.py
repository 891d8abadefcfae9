"""The example tables the reference guide is written against.

Each table carries the kinds of dirt the guide cleans up: repeated
rows, NULLs, padded and inconsistently cased text, out-of-range values
and a salary far from the rest.
"""
from typing import Dict, List

import pandas as pd


def your_table_name() -> pd.DataFrame:
    return pd.DataFrame({
        'id': pd.array([1, 2, 3, 4, 5, 6, 7, 8], dtype='Int64'),
        'full_name': pd.array([
            'Ada Lovelace', 'Alan Turing', ' Grace Hopper ', 'Edsger Dijkstra',
            'Ada Lovelace', None, 'Barbara Liskov', 'Donald Knuth'], dtype='string'),
        'name': pd.array(['Ada', 'Alan', ' Grace ', 'Edsger', 'Ada', None, 'Barbara', 'Donald'],
                         dtype='string'),
        'email': pd.array([
            'ada@example.com', 'alan@example.com', 'grace@example', 'edsger@example.com',
            'ada@example.com', None, 'barbara@example.com', 'donald@example.com'], dtype='string'),
        'phone': pd.array([
            '(555) 010-1234', None, '555.010.9999', '555-010-0000',
            '(555) 010-1234', None, '+1 555 010 7777', '555 010 8888'], dtype='string'),
        'age': pd.array([36, 41, 85, -1, 36, None, 130, 84], dtype='Int64'),
        'country': pd.array(['usa', 'USA', 'Usa', 'NL', 'usa', None, 'USA', 'usa'], dtype='string'),
        'gender': pd.array(['F', 'M', 'Female', 'M', 'F', None, 'F', 'Male'], dtype='string'),
        'status': pd.array(['active', 'inactive', 'active', 'retired', 'active', None, 'active',
                            'inactive'], dtype='string'),
        'signup_date': pd.array([
            '2023-01-15', '2023-02-01', '2023-03-10', '2023-03-11',
            '2023-04-02', None, '2023-05-20', '2023-06-30'], dtype='string'),
    })


def employee_salaries() -> pd.DataFrame:
    return pd.DataFrame({
        'employee_id': pd.array(range(1, 15), dtype='Int64'),
        'name': pd.array([
            'Ana', 'Ben', 'Cai', 'Dee', 'Eli', 'Fay', 'Gus',
            'Hal', 'Ivy', 'Jon', 'Kim', 'Lev', 'Mia', 'Ned'], dtype='string'),
        'department': pd.array([
            'Sales', 'Sales', 'Sales', 'Sales', 'Engineering', 'Engineering', 'Engineering',
            'Engineering', 'Engineering', 'HR', 'HR', 'HR', 'HR', 'Engineering'], dtype='string'),
        'salary': pd.array([
            52000.0, 48000.0, 52000.0, 61000.0, 95000.0, 105000.0, 95000.0,
            88000.0, None, 57000.0, 54000.0, 59000.0, 50000.0, 1500000.0], dtype='Float64'),
        'hire_date': pd.to_datetime([
            '2019-03-01', '2020-07-15', '2021-01-10', '2018-11-05', '2017-06-01', '2016-02-20',
            '2022-09-12', '2019-12-01', '2023-01-03', '2015-05-18', '2020-10-30', '2021-04-04',
            '2022-02-14', '2010-01-01']),
    })


def store_sales() -> pd.DataFrame:
    return pd.DataFrame({
        'sale_id': pd.array(range(1, 13), dtype='Int64'),
        'store_id': pd.array([1, 1, 1, 1, 1, 1, 2, 2, 2, 2, 2, 2], dtype='Int64'),
        'sale_date': pd.to_datetime([
            '2024-01-01', '2024-01-02', '2024-01-03', '2024-01-04', '2024-01-05', '2024-01-06',
            '2024-01-01', '2024-01-02', '2024-01-03', '2024-01-04', '2024-01-05', '2024-01-06']),
        'amount': pd.array([
            120.0, 80.0, None, 200.0, 150.0, 90.0,
            300.0, 310.0, 280.0, None, 330.0, 295.0], dtype='Float64'),
    })


SAMPLE_TABLES = {
    'your_table_name': your_table_name,
    'employee_salaries': employee_salaries,
    'store_sales': store_sales,
}


def sample_tables() -> Dict[str, pd.DataFrame]:
    """Fresh copies of every example table, by name."""
    return {name: build() for name, build in SAMPLE_TABLES.items()}


def table_for_columns(columns: List[str]) -> str:
    """The first example table that has every one of ``columns``."""
    for name, build in SAMPLE_TABLES.items():
        if all(c in build().columns for c in columns):
            return name
    raise KeyError(f"No example table has all of {columns}")
