"""
Pytest fixtures for the dashboard tests

Each fixture writes a small CSV into the test's tmp_path and returns the
matching page descriptor pointed at it, so caches keyed on file path never
leak between tests.
"""

from dataclasses import replace

import pytest

from core.data import load_page_data
from core.pages import SALES, STEAM, TWITCH

STEAM_CSV = """appid,name,release_date,developer,genres,positive_ratings,negative_ratings,average_playtime,owners,price
10,Alpha,2001-05-01,DevA,Action;Indie,90,10,120,1000-2000,5.0
20,Beta,2005-01-01,DevB,Strategy,30,70,60,"5,000-10,000",15.0
30,Gamma,,DevC,Action,0,0,0,0-20000,0
40,Delta,2010-12-31,DevD,RPG,50,50,30,20000-50000,25.0
50,Epsilon,Nov 2015,DevE,Action,80,20,45,50000-100000,abc
"""

TWITCH_CSV = """Channel,Watch time(Minutes),Stream time(minutes),Peak viewers,Average viewers,Followers,Followers gained,Views gained,Partnered,Mature,Language
a,1000,600,500,300,5000,100,1000,True,False,English
b,2000,1200,800,500,3000,50,2000,False,True,English
c,500,300,100,50,8000,10,300,True,False,Spanish
d,100,60,10,0,100,1,10,False,False,English
e,100,60,10,20,0,1,10,False,False,French
f,700,420,200,100,3000,20,500,True,False,French
"""

SALES_CSV = """Rank,Name,Platform,Year,Genre,Publisher,NA_Sales,EU_Sales,JP_Sales,Other_Sales,Global_Sales
1,G1,Wii,2006,Sports,Nin,40,30,4,8,82
2,G2,NES,1985,Platform,Nin,29,3,7,1,40
3,G3,Wii,2008,Racing,Nin,15,13,4,3,35
4,G4,DS,N/A,Sports,EA,4,0.3,0,0.7,5
5,G5,DS,2006,Racing,Nin,10,8,4,2,24
"""


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "api: Tests that go through the FastAPI app")


def _write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def steam_page(tmp_path):
    return replace(STEAM, dataset=str(_write(tmp_path, "steam.csv", STEAM_CSV)))


@pytest.fixture
def twitch_page(tmp_path):
    return replace(TWITCH, dataset=str(_write(tmp_path, "twitch.csv", TWITCH_CSV)))


@pytest.fixture
def sales_page(tmp_path):
    return replace(SALES, dataset=str(_write(tmp_path, "vgsales.csv", SALES_CSV)))


@pytest.fixture
def steam_ctx(steam_page):
    return load_page_data(steam_page)


@pytest.fixture
def twitch_ctx(twitch_page):
    return load_page_data(twitch_page)


@pytest.fixture
def sales_ctx(sales_page):
    return load_page_data(sales_page)


@pytest.fixture
def write_csv(tmp_path):
    """Write arbitrary CSV text and return its path"""

    def _inner(name, text):
        return _write(tmp_path, name, text)

    return _inner
