"""
roomchat
~~~~~~~~

实时多房间聊天后端：房间成员管理、颜色分配、在线列表广播与消息转发。
"""
