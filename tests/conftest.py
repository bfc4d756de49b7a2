"""
测试公共设施

小词典的内容经过挑选，使切分方案和候选顺序可以手算
"""

import os

# 测试不写日志文件
os.environ.setdefault('HEXKEY_LOG_TO_FILE', '0')

import pytest

from hexkey.engine import BufferSink, CompositionEngine, Dictionary, EngineConfig


SMALL_SYLLABLES = ['a', 'pu', 'ru', 'rui', 'yi', 'ni', 'hao', 'ma', 'na', 'wo', 'men']

SMALL_CHARS = {
    'a': ['啊'],
    'pu': ['普', '铺'],
    'ru': ['如', '入'],
    'rui': ['瑞', '锐'],
    'yi': ['一', '以'],
    'ni': ['你', '呢'],
    'hao': ['好', '号'],
    'ma': ['吗', '妈'],
    'na': ['那', '拿'],
    'wo': ['我'],
    'men': ['们', '门'],
}

SMALL_PHRASES = {
    "pu'rui": ['普瑞'],
    "ni'hao": ['你好'],
    "ni'hao'ma": ['你好吗'],
    "wo'men": ['我们'],
}


@pytest.fixture
def small_dict():
    return Dictionary(SMALL_SYLLABLES, SMALL_CHARS, SMALL_PHRASES)


@pytest.fixture
def sink():
    return BufferSink()


@pytest.fixture
def engine(small_dict, sink):
    return CompositionEngine(small_dict, EngineConfig(), sink)
