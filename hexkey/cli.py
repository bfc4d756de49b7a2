"""
HexKey 命令行工具
"""

import argparse
import os
import sys


def _print_query(letters: str, top_k: int, mode: str):
    from hexkey import create_engine, CandidateMode
    from hexkey.engine.layout import groups_for_text

    engine = create_engine()
    engine.set_mode(CandidateMode(mode))
    for group in groups_for_text(letters):
        if not engine.press_key(group):
            break

    print("按键: " + " ".join(k.label for k in engine.pending_keys))
    print("切分: " + "'".join(s.text for s in engine.snapshot().pending_display))
    prefixes = engine.available_prefixes
    if prefixes:
        print("音节: " + " ".join(s.text for s in prefixes))
    for i, c in enumerate(engine.candidates[:top_k], 1):
        print(f"{i}. {c.display} ({c.score:.2f}, {c.kind.value}, {c.consumed_len}键)")


def run_script(script: str, mode: str = "word") -> str:
    """
    回放按键脚本，返回上屏文本

    以空白分隔的记号：
        字母串       按对应的按键组逐个按下（nihao）
        #N          选第 N 个候选（从 1 开始）
        _           空格        <  退格        !  回车        ~  取消
        @           切换词/字    =xx  锁定音节 xx（再次锁定同一音节即取消）
        其他         直接输入
    """
    from hexkey import create_engine, CandidateMode, Segment
    from hexkey.engine.layout import groups_for_text

    engine = create_engine()
    engine.set_mode(CandidateMode(mode))
    actions = {'_': engine.space, '<': engine.delete, '!': engine.enter, '~': engine.cancel, '@': engine.toggle_mode}

    for token in script.split():
        if token in actions:
            actions[token]()
        elif token.startswith('#') and token[1:].isdigit():
            engine.select_index(int(token[1:]) - 1)
        elif token.startswith('=') and len(token) > 1:
            text = token[1:].lower()
            engine.focus_syllable(Segment(text, len(text)))
        elif token.isascii() and token.isalpha():
            for group in groups_for_text(token):
                engine.press_key(group)
        else:
            for char in token:
                engine.input_literal(char)

    if engine.is_composing:
        engine.enter()
    return engine.sink.text


def main():
    """命令行入口"""
    parser = argparse.ArgumentParser(
        prog="hexkey",
        description="HexKey - 六键拼音输入引擎",
    )

    subparsers = parser.add_subparsers(dest="command", help="可用命令")

    # server 命令
    server_parser = subparsers.add_parser("server", help="启动 API 服务")
    server_parser.add_argument("--host", default="0.0.0.0", help="绑定地址 (默认: 0.0.0.0)")
    server_parser.add_argument("--port", type=int, default=3000, help="端口 (默认: 3000)")

    # query 命令
    query_parser = subparsers.add_parser("query", help="按字母所在按键组查询候选")
    query_parser.add_argument("letters", help="字母串，如 nihao")
    query_parser.add_argument("-k", "--top-k", type=int, default=10, help="返回候选数量")
    query_parser.add_argument("--mode", choices=["word", "character"], default="word", help="词/字偏好")

    # type 命令
    type_parser = subparsers.add_parser("type", help="回放按键脚本并输出上屏文本")
    type_parser.add_argument("script", help="按键脚本，如 'nihao #1 ma #1'")
    type_parser.add_argument("--mode", choices=["word", "character"], default="word", help="词/字偏好")

    # build-dict 命令
    build_parser = subparsers.add_parser("build-dict", help="由词表构建字典")
    build_parser.add_argument("word_list", help="词表文件（每行一个词）")
    build_parser.add_argument("-o", "--output", default="data/dicts", help="输出目录")
    build_parser.add_argument("--syllables", default=None, help="现成的音节表（可选）")

    # version 命令
    subparsers.add_parser("version", help="显示版本")

    args = parser.parse_args()

    if args.command == "server":
        from hexkey.api.server import main as server_main
        os.environ["HOST"] = args.host
        os.environ["PORT"] = str(args.port)
        server_main()

    elif args.command == "query":
        _print_query(args.letters, args.top_k, args.mode)

    elif args.command == "type":
        print(run_script(args.script, args.mode))

    elif args.command == "build-dict":
        from pathlib import Path
        from hexkey.dictbuild import build_dict
        stats = build_dict(
            Path(args.word_list),
            Path(args.output),
            Path(args.syllables) if args.syllables else None,
        )
        print(f"音节 {stats['syllables']}, 单字 {stats['chars']}, 词组 {stats['phrases']}")

    elif args.command == "version":
        from hexkey import __version__
        print(f"HexKey v{__version__}")

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
