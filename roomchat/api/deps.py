from fastapi import Request

from roomchat.services.chat_server import ChatServer


def get_chat_server(request: Request) -> ChatServer:
    return request.app.state.chat_server
