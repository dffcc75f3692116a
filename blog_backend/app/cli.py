# app/cli.py
import logging

import click
from flask import Flask, current_app


def register_commands(app: Flask) -> None:
    """운영용 Flask CLI 명령을 등록합니다. (예: flask --app run reconcile-likes)"""

    @app.cli.command('reconcile-likes')
    def reconcile_likes_command():
        """모든 댓글/답글의 likes 값을 likedBy 크기에 맞게 보정합니다."""
        store = current_app.services['comment_store']
        fixed = store.reconcile_likes()
        logging.info(f"좋아요 수 보정 완료: {fixed}건")
        click.echo(f"보정된 댓글/답글 수: {fixed}")
